"""Initial schema

Companies, product catalog, recipes with their ingredients, production
orders and inventory transactions.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-03-02
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _company_fk(table: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(['company_id'], ['companies.id'],
                                   name=f'fk_{table}_company', ondelete='CASCADE')


def upgrade() -> None:
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'product_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('is_system', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        _company_fk('product_types'),
        sa.UniqueConstraint('company_id', 'name', name='uq_product_types_company_name'),
    )

    op.create_table(
        'groups',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        _company_fk('groups'),
    )

    op.create_table(
        'subgroups',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False, index=True),
        sa.Column('group_id', sa.Integer(), nullable=False, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        _company_fk('subgroups'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'],
                                name='fk_subgroups_group', ondelete='CASCADE'),
    )

    op.create_table(
        'recipes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(50), nullable=True),

        # Yield
        sa.Column('yield_kg', sa.Numeric(18, 4), nullable=False),
        sa.Column('yield_units', sa.Numeric(18, 4), nullable=True),
        sa.Column('instructions', sa.Text(), nullable=True),

        # Derived cost
        sa.Column('cost_per_kg', sa.Numeric(18, 4), server_default='0', nullable=False),
        sa.Column('cost_per_unit', sa.Numeric(18, 4), nullable=True),

        sa.Column('group_id', sa.Integer(), nullable=True),
        sa.Column('subgroup_id', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), server_default=sa.false(), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),

        _company_fk('recipes'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'],
                                name='fk_recipes_group', ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['subgroup_id'], ['subgroups.id'],
                                name='fk_recipes_subgroup', ondelete='SET NULL'),
    )

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False, index=True),
        sa.Column('sku', sa.String(50), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('unit', sa.String(20), server_default='Kg', nullable=False),
        sa.Column('supplier', sa.String(255), nullable=True),

        # Cost & pricing
        sa.Column('cost', sa.Numeric(18, 4), server_default='0', nullable=False),
        sa.Column('unit_price', sa.Numeric(18, 4), nullable=True),

        # Weights (kg)
        sa.Column('unit_weight', sa.Numeric(18, 4), nullable=True),
        sa.Column('kg_weight', sa.Numeric(18, 4), nullable=True),

        # Stock
        sa.Column('current_stock', sa.Numeric(18, 4), server_default='0', nullable=False),
        sa.Column('min_stock', sa.Numeric(18, 4), server_default='0', nullable=False),

        sa.Column('recipe_id', sa.Integer(), nullable=True, index=True),
        sa.Column('product_type_id', sa.Integer(), nullable=True, index=True),
        sa.Column('group_id', sa.Integer(), nullable=True),
        sa.Column('subgroup_id', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), server_default=sa.false(), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),

        _company_fk('products'),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id'],
                                name='fk_products_recipe', ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['product_type_id'], ['product_types.id'],
                                name='fk_products_product_type'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'],
                                name='fk_products_group', ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['subgroup_id'], ['subgroups.id'],
                                name='fk_products_subgroup', ondelete='SET NULL'),
        sa.UniqueConstraint('company_id', 'sku', name='uq_products_company_sku'),
    )

    op.create_table(
        'recipe_ingredients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False, index=True),
        sa.Column('recipe_id', sa.Integer(), nullable=False, index=True),
        sa.Column('product_id', sa.Integer(), nullable=True, index=True),
        sa.Column('sub_recipe_id', sa.Integer(), nullable=True, index=True),
        sa.Column('is_sub_recipe', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('quantity', sa.Numeric(18, 4), nullable=False),
        sa.Column('unit', sa.String(20), server_default='kg', nullable=False),

        # Cost snapshots
        sa.Column('cost', sa.Numeric(18, 4), server_default='0', nullable=False),
        sa.Column('total_cost', sa.Numeric(18, 4), server_default='0', nullable=False),

        sa.Column('etapa', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),

        _company_fk('recipe_ingredients'),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id'],
                                name='fk_recipe_ingredients_recipe', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'],
                                name='fk_recipe_ingredients_product'),
        sa.ForeignKeyConstraint(['sub_recipe_id'], ['recipes.id'],
                                name='fk_recipe_ingredients_sub_recipe'),
        sa.CheckConstraint('(product_id IS NULL) <> (sub_recipe_id IS NULL)',
                           name='ck_recipe_ingredients_single_reference'),
    )

    op.create_table(
        'production_orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False, index=True),
        sa.Column('order_number', sa.String(50), nullable=False, index=True),
        sa.Column('date', sa.Date(), nullable=False, index=True),
        sa.Column('status', sa.String(50), server_default='pending', nullable=False, index=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        _company_fk('production_orders'),
        sa.UniqueConstraint('company_id', 'order_number', name='uq_production_orders_company_number'),
    )

    op.create_table(
        'production_order_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), nullable=False, index=True),
        sa.Column('recipe_id', sa.Integer(), nullable=False, index=True),
        sa.Column('recipe_name', sa.String(255), nullable=False),
        sa.Column('unit', sa.String(10), server_default='kg', nullable=False),
        sa.Column('planned_quantity_kg', sa.Numeric(18, 4), server_default='0', nullable=False),
        sa.Column('planned_quantity_units', sa.Numeric(18, 4), nullable=True),
        sa.Column('actual_quantity_kg', sa.Numeric(18, 4), nullable=True),
        sa.Column('actual_quantity_units', sa.Numeric(18, 4), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['production_orders.id'],
                                name='fk_production_order_items_order', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id'],
                                name='fk_production_order_items_recipe'),
    )

    op.create_table(
        'inventory_transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False, index=True),
        sa.Column('product_id', sa.Integer(), nullable=False, index=True),
        sa.Column('production_order_id', sa.Integer(), nullable=True, index=True),
        sa.Column('type', sa.String(10), nullable=False),
        sa.Column('quantity', sa.Numeric(18, 4), nullable=False),
        sa.Column('cost', sa.Numeric(18, 4), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('invoice', sa.String(100), nullable=True),
        sa.Column('reason', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        _company_fk('inventory_transactions'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'],
                                name='fk_inventory_transactions_product'),
        sa.ForeignKeyConstraint(['production_order_id'], ['production_orders.id'],
                                name='fk_inventory_transactions_production_order', ondelete='SET NULL'),
    )

    # Name lookups are case-insensitive among active rows
    op.create_index('ix_recipes_company_lower_name', 'recipes',
                    ['company_id', sa.text('lower(name)')])
    op.create_index('ix_products_company_lower_name', 'products',
                    ['company_id', sa.text('lower(name)')])


def downgrade() -> None:
    op.drop_index('ix_products_company_lower_name', table_name='products')
    op.drop_index('ix_recipes_company_lower_name', table_name='recipes')
    op.drop_table('inventory_transactions')
    op.drop_table('production_order_items')
    op.drop_table('production_orders')
    op.drop_table('recipe_ingredients')
    op.drop_table('products')
    op.drop_table('recipes')
    op.drop_table('subgroups')
    op.drop_table('groups')
    op.drop_table('product_types')
    op.drop_table('companies')
