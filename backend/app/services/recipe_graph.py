"""
In-memory recipe graph

Recipes are nodes, ingredient rows are edges to either a raw product or a
sub-recipe. The graph is loaded once per operation from the Catalog Store
(only active rows) and then walked without further queries.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from app.exceptions import CycleDetectedError
from app.services.catalog_store import CatalogStore


def _dec(value) -> Optional[Decimal]:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


@dataclass(frozen=True)
class RecipeNode:
    id: int
    name: str
    code: Optional[str]
    yield_kg: Optional[Decimal]
    yield_units: Optional[Decimal]
    cost_per_kg: Decimal


@dataclass(frozen=True)
class IngredientEdge:
    id: int
    recipe_id: int
    product_id: Optional[int]
    sub_recipe_id: Optional[int]
    quantity: Decimal
    unit: str
    etapa: Optional[str] = None

    @property
    def is_sub_recipe(self) -> bool:
        return self.sub_recipe_id is not None


@dataclass(frozen=True)
class MaterialNode:
    id: int
    name: str
    unit: str
    cost: Decimal
    recipe_id: Optional[int] = None


@dataclass
class RecipeGraph:
    nodes: Dict[int, RecipeNode] = field(default_factory=dict)
    edges: Dict[int, List[IngredientEdge]] = field(default_factory=dict)
    materials: Dict[int, MaterialNode] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        store: CatalogStore,
        root_ids: Iterable[int],
        follow_products: bool = False,
    ) -> "RecipeGraph":
        """
        Load every active recipe reachable from ``root_ids``.

        Walks breadth-first one level at a time so each level costs one
        query for recipes, one for their ingredients and one for their raw
        products. With ``follow_products`` the recipes that generated those
        raw products are loaded too. Inactive or missing recipes and products
        are simply absent from the graph.
        """
        graph = cls()
        frontier: Set[int] = set(root_ids)

        while frontier:
            recipes = store.get_recipes(frontier)
            ingredients = store.get_ingredients_for_recipes(recipes.keys())
            next_frontier: Set[int] = set()
            product_ids: Set[int] = set()

            for recipe in recipes.values():
                graph.nodes[recipe.id] = RecipeNode(
                    id=recipe.id,
                    name=recipe.name,
                    code=recipe.code,
                    yield_kg=_dec(recipe.yield_kg),
                    yield_units=_dec(recipe.yield_units),
                    cost_per_kg=_dec(recipe.cost_per_kg) or Decimal("0"),
                )
                graph.edges[recipe.id] = [
                    IngredientEdge(
                        id=row.id,
                        recipe_id=row.recipe_id,
                        product_id=None if row.sub_recipe_id is not None else row.product_id,
                        sub_recipe_id=row.sub_recipe_id,
                        quantity=_dec(row.quantity) or Decimal("0"),
                        unit=row.unit or "kg",
                        etapa=row.etapa,
                    )
                    for row in ingredients.get(recipe.id, [])
                ]
                for edge in graph.edges[recipe.id]:
                    if edge.is_sub_recipe:
                        if edge.sub_recipe_id not in graph.nodes:
                            next_frontier.add(edge.sub_recipe_id)
                    elif edge.product_id is not None:
                        product_ids.add(edge.product_id)

            for product in store.get_products(product_ids - set(graph.materials)).values():
                graph.materials[product.id] = MaterialNode(
                    id=product.id,
                    name=product.name,
                    unit=product.unit or "Kg",
                    cost=_dec(product.cost) or Decimal("0"),
                    recipe_id=product.recipe_id,
                )
                if follow_products and product.recipe_id is not None:
                    next_frontier.add(product.recipe_id)

            frontier = next_frontier - set(graph.nodes)
        return graph

    @classmethod
    def load_all(cls, store: CatalogStore) -> "RecipeGraph":
        """Load every active recipe of the company."""
        return cls.load(store, [r.id for r in store.list_active_recipes()])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, recipe_id: int) -> bool:
        return recipe_id in self.nodes

    def node(self, recipe_id: int) -> Optional[RecipeNode]:
        return self.nodes.get(recipe_id)

    def ingredients(self, recipe_id: int) -> List[IngredientEdge]:
        return self.edges.get(recipe_id, [])

    def material(self, product_id: Optional[int]) -> Optional[MaterialNode]:
        if product_id is None:
            return None
        return self.materials.get(product_id)

    def sub_recipe_ids(self, recipe_id: int) -> List[int]:
        return [e.sub_recipe_id for e in self.ingredients(recipe_id) if e.is_sub_recipe]

    def dependency_ids(self, recipe_id: int) -> List[int]:
        """
        Recipes whose cost feeds this recipe: its sub-recipes plus the
        recipes that generated the raw products it uses.
        """
        ids = []
        for edge in self.ingredients(recipe_id):
            if edge.is_sub_recipe:
                ids.append(edge.sub_recipe_id)
            else:
                material = self.material(edge.product_id)
                if material is not None and material.recipe_id is not None:
                    ids.append(material.recipe_id)
        return ids

    def names(self, chain: Iterable[int]) -> List[str]:
        return [self.nodes[rid].name if rid in self.nodes else f"#{rid}" for rid in chain]

    # ------------------------------------------------------------------
    # Cycles & ordering
    # ------------------------------------------------------------------

    def find_cycle(self, start: Optional[int] = None) -> Optional[List[int]]:
        """
        Return the first cycle found as a chain of recipe ids whose first and
        last elements are equal, or None when the graph is acyclic.
        """
        starts = [start] if start is not None else sorted(self.nodes)
        done: Set[int] = set()

        def visit(recipe_id: int, path: List[int], on_path: Set[int]) -> Optional[List[int]]:
            if recipe_id in on_path:
                return path[path.index(recipe_id):] + [recipe_id]
            if recipe_id in done or recipe_id not in self.nodes:
                return None
            path.append(recipe_id)
            on_path.add(recipe_id)
            for child in self.sub_recipe_ids(recipe_id):
                cycle = visit(child, path, on_path)
                if cycle:
                    return cycle
            path.pop()
            on_path.discard(recipe_id)
            done.add(recipe_id)
            return None

        for recipe_id in starts:
            cycle = visit(recipe_id, [], set())
            if cycle:
                return cycle
        return None

    def reaches(self, start_ids: Iterable[int], target_id: int) -> Optional[List[int]]:
        """
        Path of recipe ids from one of ``start_ids`` down to ``target_id``
        following sub-recipe edges, or None when the target is unreachable.
        """
        seen: Set[int] = set()

        def walk(recipe_id: int, path: List[int]) -> Optional[List[int]]:
            path = path + [recipe_id]
            if recipe_id == target_id:
                return path
            if recipe_id in seen:
                return None
            seen.add(recipe_id)
            for child in self.sub_recipe_ids(recipe_id):
                found = walk(child, path)
                if found:
                    return found
            return None

        for start in start_ids:
            found = walk(start, [])
            if found:
                return found
        return None

    def dependency_path(
        self,
        start_ids: Iterable[int],
        recipe_id: Optional[int] = None,
        product_id: Optional[int] = None,
    ) -> Optional[List[int]]:
        """
        Path of recipe ids from one of ``start_ids`` down to ``recipe_id``, or
        to a recipe using ``product_id`` as a raw ingredient, following
        :meth:`dependency_ids`. Expects a graph loaded with ``follow_products``.
        """
        seen: Set[int] = set()

        def walk(current: int, path: List[int]) -> Optional[List[int]]:
            path = path + [current]
            if current == recipe_id:
                return path
            if current in seen:
                return None
            seen.add(current)
            if product_id is not None and any(
                e.product_id == product_id for e in self.ingredients(current)
            ):
                return path
            for child in self.dependency_ids(current):
                found = walk(child, path)
                if found:
                    return found
            return None

        for start in start_ids:
            found = walk(start, [])
            if found:
                return found
        return None

    def topological_order(self) -> List[int]:
        """
        Recipe ids ordered so every sub-recipe, and every recipe behind a
        generated raw product, precedes the recipes using it.

        Raises:
            CycleDetectedError: If the stored data contains a cycle
        """
        cycle = self.find_cycle()
        if cycle:
            raise CycleDetectedError(cycle, names=self.names(cycle))

        ordered: List[int] = []
        placed: Set[int] = set()

        def place(recipe_id: int) -> None:
            if recipe_id in placed or recipe_id not in self.nodes:
                return
            placed.add(recipe_id)
            for child in self.dependency_ids(recipe_id):
                place(child)
            ordered.append(recipe_id)

        for recipe_id in sorted(self.nodes):
            place(recipe_id)
        return ordered
