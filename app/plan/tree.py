"""
Structural updates of a PlanData tree.

Every function returns a new tree and leaves its input untouched, so any
earlier tree can be kept as a snapshot and restored as-is.
"""

from typing import Callable, List, Optional

from app.schemas.plan import IngredientRead, ItemRead, MealRead, PersonRead, PlanData, ServiceRead

ItemsUpdater = Callable[[List[ItemRead]], List[ItemRead]]
IngredientsUpdater = Callable[[List[IngredientRead]], List[IngredientRead]]


def sort_meals(meals: List[MealRead]) -> List[MealRead]:
    # ISO dates order correctly as strings; ties keep insertion order
    return sorted(meals, key=lambda meal: meal.date)


def _map_services(plan: PlanData, fn: Callable[[ServiceRead], ServiceRead]) -> PlanData:
    meals = [
        meal.model_copy(update={"services": [fn(service) for service in meal.services]})
        for meal in plan.meals
    ]
    return plan.model_copy(update={"meals": meals})


# -------- Meals --------

def insert_meal_sorted(plan: PlanData, meal: MealRead) -> PlanData:
    return plan.model_copy(update={"meals": sort_meals([*plan.meals, meal])})


def replace_meal(plan: PlanData, meal_id: int, **changes) -> PlanData:
    meals = [
        meal.model_copy(update=changes) if meal.id == meal_id else meal
        for meal in plan.meals
    ]
    return plan.model_copy(update={"meals": sort_meals(meals)})


def remove_meal(plan: PlanData, meal_id: int) -> PlanData:
    """Drops the meal together with its services and their items"""
    return plan.model_copy(update={"meals": [meal for meal in plan.meals if meal.id != meal_id]})


# -------- Services --------

def add_service(plan: PlanData, meal_id: int, service: ServiceRead) -> PlanData:
    meals = [
        meal.model_copy(update={"services": [*meal.services, service]}) if meal.id == meal_id else meal
        for meal in plan.meals
    ]
    return plan.model_copy(update={"meals": meals})


def update_service(plan: PlanData, service_id: int, **changes) -> PlanData:
    return _map_services(
        plan,
        lambda service: service.model_copy(update=changes) if service.id == service_id else service,
    )


def remove_service(plan: PlanData, service_id: int) -> PlanData:
    meals = [
        meal.model_copy(update={"services": [s for s in meal.services if s.id != service_id]})
        for meal in plan.meals
    ]
    return plan.model_copy(update={"meals": meals})


# -------- Items --------

def map_service_items(plan: PlanData, service_id: int, updater: ItemsUpdater) -> PlanData:
    return _map_services(
        plan,
        lambda service: (
            service.model_copy(update={"items": updater(list(service.items))})
            if service.id == service_id else service
        ),
    )


def add_item(plan: PlanData, service_id: int, item: ItemRead) -> PlanData:
    return map_service_items(plan, service_id, lambda items: [*items, item])


def update_item(plan: PlanData, item_id: int, **changes) -> PlanData:
    def updater(service: ServiceRead) -> ServiceRead:
        if not any(item.id == item_id for item in service.items):
            return service
        items = [item.model_copy(update=changes) if item.id == item_id else item for item in service.items]
        return service.model_copy(update={"items": items})

    return _map_services(plan, updater)


def remove_item(plan: PlanData, item_id: int) -> PlanData:
    def updater(service: ServiceRead) -> ServiceRead:
        if not any(item.id == item_id for item in service.items):
            return service
        return service.model_copy(update={"items": [item for item in service.items if item.id != item_id]})

    return _map_services(plan, updater)


def move_item(plan: PlanData, item_id: int, target_service_id: int, target_order: Optional[int] = None) -> PlanData:
    """Take the item out of its service and splice it into the target.

    It is appended unless ``target_order`` is a valid position in the target.
    """
    moving = None
    for meal in plan.meals:
        for service in meal.services:
            for item in service.items:
                if item.id == item_id:
                    moving = item
    if moving is None:
        return plan

    moved = moving.model_copy(update={"service_id": target_service_id})
    plan = remove_item(plan, item_id)

    def insert(items: List[ItemRead]) -> List[ItemRead]:
        if target_order is not None and target_order <= len(items):
            items.insert(target_order, moved)
        else:
            items.append(moved)
        return items

    return map_service_items(plan, target_service_id, insert)


def unassign_person(plan: PlanData, person_id: int) -> PlanData:
    def updater(service: ServiceRead) -> ServiceRead:
        if not any(item.person_id == person_id for item in service.items):
            return service
        items = [
            item.model_copy(update={"person_id": None}) if item.person_id == person_id else item
            for item in service.items
        ]
        return service.model_copy(update={"items": items})

    return _map_services(plan, updater)


# -------- Ingredients --------

def map_item_ingredients(plan: PlanData, item_id: int, updater: IngredientsUpdater) -> PlanData:
    def update_service_items(service: ServiceRead) -> ServiceRead:
        if not any(item.id == item_id for item in service.items):
            return service
        items = [
            item.model_copy(update={"ingredients": updater(list(item.ingredients))}) if item.id == item_id else item
            for item in service.items
        ]
        return service.model_copy(update={"items": items})

    return _map_services(plan, update_service_items)


def update_ingredient(plan: PlanData, item_id: int, ingredient_id: int, **changes) -> PlanData:
    return map_item_ingredients(
        plan,
        item_id,
        lambda ingredients: [
            ingredient.model_copy(update=changes) if ingredient.id == ingredient_id else ingredient
            for ingredient in ingredients
        ],
    )


# -------- People --------

def _sort_people(people: List[PersonRead]) -> List[PersonRead]:
    return sorted(people, key=lambda person: person.name.lower())


def insert_person_sorted(plan: PlanData, person: PersonRead) -> PlanData:
    return plan.model_copy(update={"people": _sort_people([*plan.people, person])})


def replace_person(plan: PlanData, person_id: int, **changes) -> PlanData:
    people = [
        person.model_copy(update=changes) if person.id == person_id else person
        for person in plan.people
    ]
    return plan.model_copy(update={"people": _sort_people(people)})


def remove_person(plan: PlanData, person_id: int) -> PlanData:
    """Removes the person; their items become unassigned"""
    plan = unassign_person(plan, person_id)
    return plan.model_copy(update={"people": [p for p in plan.people if p.id != person_id]})
