"""
Ingredient actions, including AI generation backed by the ingredient cache.

Generation replaces an item's ingredient list wholesale. A cached list for
the same dish and headcount is trusted once enough independent generations
agreed on it; otherwise the LLM is asked again and the answer confirms or
replaces the cached list.
"""

import json
import logging
from typing import List, Optional

from app.core.config import settings
from app.models import AIFeedback, Event, Ingredient, IngredientCache, Item, Person
from app.plan.headcount import resolve_people_count
from app.plan.rsvp import confirmed_headcount
from app.schemas.actions import (
    CreateIngredientInput,
    DeleteAllIngredientsInput,
    DeleteByIdInput,
    GenerateAllIngredientsInput,
    GenerateIngredientsInput,
    SaveAIFeedbackInput,
    UpdateIngredientInput,
)
from app.schemas.common import ActionResult
from app.schemas.plan import IngredientRead, PersonRead
from app.services.action_utils import ActionContext, commit_and_revalidate, create_safe_action
from app.services.change_log import log_change, row_to_dict
from app.services.llm import GeneratedIngredient, LLMError, get_llm
from app.services.repositories import PlanRepo, verify_access
from app.utils.errors import NotFoundError

logger = logging.getLogger(__name__)

NOT_LOGGED_IN_MESSAGE = "Connectez-vous pour utiliser la génération IA."
EMAIL_NOT_VERIFIED_MESSAGE = "Vérifiez votre adresse e-mail pour utiliser la génération IA."
GENERATION_FAILED_MESSAGE = "Impossible de générer les ingrédients. Réessayez."

MIN_CACHEABLE_INGREDIENTS = 3


class GenerationFailed(Exception):
    pass


def normalize_dish_name(name: str) -> str:
    return " ".join(name.lower().split())


def ingredients_match(a: List[GeneratedIngredient], b: List[GeneratedIngredient]) -> bool:
    """Same ingredient names, ignoring case and order"""
    names_a = sorted(ingredient.name.lower().strip() for ingredient in a)
    names_b = sorted(ingredient.name.lower().strip() for ingredient in b)
    return names_a == names_b


def _load_cached(entry: IngredientCache) -> List[GeneratedIngredient]:
    return [GeneratedIngredient.model_validate(raw) for raw in json.loads(entry.ingredients)]


def _dump_ingredients(ingredients: List[GeneratedIngredient]) -> str:
    return json.dumps([ingredient.model_dump() for ingredient in ingredients], ensure_ascii=False)


def _event_confirmed_headcount(db, event: Event) -> int:
    people = db.query(Person).filter(Person.event_id == event.id).all()
    return confirmed_headcount(PersonRead.model_validate(person) for person in people)


def _ai_gate(ctx: ActionContext) -> Optional[str]:
    if ctx.user is None:
        return NOT_LOGGED_IN_MESSAGE
    if not ctx.user.email_verified:
        return EMAIL_NOT_VERIFIED_MESSAGE
    return None


def generate_for_item(
    ctx: ActionContext,
    item: Item,
    people_count: int,
    llm,
    adults: Optional[int] = None,
    children: Optional[int] = None,
    note: Optional[str] = None,
    locale: Optional[str] = None,
) -> List[Ingredient]:
    """Replace ``item``'s ingredients with a generated list; nothing is committed here"""
    db = ctx.db
    dish_name = normalize_dish_name(item.name)
    cached = (
        db.query(IngredientCache)
        .filter(IngredientCache.dish_name == dish_name, IngredientCache.people_count == people_count)
        .first()
    )

    if cached and cached.confirmations >= settings.AI_CACHE_MIN_CONFIRMATIONS:
        logger.info(f"Ingredient cache hit for '{dish_name}' ({people_count} pers.)")
        generated = _load_cached(cached)
    else:
        try:
            generated = llm.generate_ingredients(
                item.name,
                people_count,
                adults=adults,
                children=children,
                description=item.quantity,
                note=note or item.note,
                locale=locale or settings.DEFAULT_LOCALE,
            )
        except LLMError as e:
            logger.error(f"Generation failed for item {item.id}: {e}")
            raise GenerationFailed(GENERATION_FAILED_MESSAGE) from e

        if not generated:
            raise GenerationFailed(GENERATION_FAILED_MESSAGE)

        if len(generated) >= MIN_CACHEABLE_INGREDIENTS:
            if cached is None:
                cached = IngredientCache(
                    dish_name=dish_name,
                    people_count=people_count,
                    ingredients=_dump_ingredients(generated),
                    confirmations=1,
                )
                db.add(cached)
                db.flush()
            elif ingredients_match(generated, _load_cached(cached)):
                cached.confirmations += 1
            else:
                cached.ingredients = _dump_ingredients(generated)
                cached.confirmations = 1

    db.query(Ingredient).filter(Ingredient.item_id == item.id).delete(synchronize_session=False)
    if cached is not None:
        item.cache_id = cached.id

    created = []
    for index, ingredient in enumerate(generated):
        row = Ingredient(
            item_id=item.id,
            name=ingredient.name,
            quantity=ingredient.quantity or None,
            category=ingredient.category or "misc",
            order_index=index,
        )
        db.add(row)
        created.append(row)
    db.flush()
    return created


@create_safe_action(GenerateIngredientsInput)
def generate_ingredients_action(ctx: ActionContext, data: GenerateIngredientsInput) -> ActionResult:
    refusal = _ai_gate(ctx)
    if refusal:
        return ActionResult(success=False, error=refusal)

    event, _ = verify_access(ctx, data.slug, "ingredient:generate", data.key, data.token)
    db = ctx.db
    item = PlanRepo.get_item(db, event, data.item_id)
    service = item.service

    people_count = resolve_people_count(
        data.people_count,
        data.note or item.note,
        service.people_count or (service.adults + service.children),
        _event_confirmed_headcount(db, event),
    )

    try:
        created = generate_for_item(
            ctx,
            item,
            people_count,
            get_llm(),
            adults=data.adults,
            children=data.children,
            note=data.note,
            locale=data.locale,
        )
    except GenerationFailed as e:
        db.rollback()
        return ActionResult(success=False, error=str(e))

    log_change(db, "update", "items", item.id, None, item, ctx)
    commit_and_revalidate(ctx, data.slug)
    return ActionResult(success=True, data=[IngredientRead.model_validate(row) for row in created])


@create_safe_action(GenerateAllIngredientsInput)
def generate_all_ingredients_action(ctx: ActionContext, data: GenerateAllIngredientsInput) -> ActionResult:
    """Generate ingredients or only assign a shopping category, per selected item"""
    refusal = _ai_gate(ctx)
    if refusal:
        return ActionResult(success=False, error=refusal)

    event, _ = verify_access(ctx, data.slug, "ingredient:generate", data.key, data.token)
    db = ctx.db
    llm = get_llm()
    confirmed = _event_confirmed_headcount(db, event)

    processed = 0
    errors = []
    to_categorize = []

    for entry in data.items:
        try:
            item = PlanRepo.get_item(db, event, entry.id)
        except NotFoundError:
            errors.append({"item_id": entry.id, "item_name": None, "error": "Item not found"})
            continue

        if entry.action == "categorize":
            to_categorize.append(item)
            continue

        service = item.service
        people_count = resolve_people_count(
            None,
            item.note,
            service.people_count or (service.adults + service.children),
            confirmed,
        )
        try:
            generate_for_item(ctx, item, people_count, llm, locale=data.locale)
            db.commit()
            processed += 1
        except GenerationFailed as e:
            db.rollback()
            errors.append({"item_id": item.id, "item_name": item.name, "error": str(e)})

    if to_categorize:
        try:
            categories = llm.categorize_items([item.name for item in to_categorize], data.locale or settings.DEFAULT_LOCALE)
        except LLMError as e:
            logger.error(f"Categorisation failed: {e}")
            errors.extend(
                {"item_id": item.id, "item_name": item.name, "error": GENERATION_FAILED_MESSAGE}
                for item in to_categorize
            )
        else:
            for item in to_categorize:
                item.category = categories.get(item.name, "misc")
            processed += len(to_categorize)

    commit_and_revalidate(ctx, data.slug)
    logger.info(f"Bulk generation for {data.slug}: {processed} processed, {len(errors)} failed")
    return ActionResult(success=True, data={"processed": processed, "failed": len(errors), "errors": errors})


@create_safe_action(CreateIngredientInput)
def create_ingredient_action(ctx: ActionContext, data: CreateIngredientInput) -> IngredientRead:
    event, _ = verify_access(ctx, data.slug, "ingredient:create", data.key, data.token)
    db = ctx.db
    item = PlanRepo.get_item(db, event, data.item_id)

    ingredient = Ingredient(
        item_id=item.id,
        name=data.name,
        quantity=data.quantity or None,
        order_index=PlanRepo.next_ingredient_order(db, item.id),
    )
    db.add(ingredient)
    db.flush()
    log_change(db, "create", "ingredients", ingredient.id, None, ingredient, ctx)
    commit_and_revalidate(ctx, data.slug)
    db.refresh(ingredient)
    return IngredientRead.model_validate(ingredient)


@create_safe_action(UpdateIngredientInput)
def update_ingredient_action(ctx: ActionContext, data: UpdateIngredientInput) -> IngredientRead:
    event, _ = verify_access(ctx, data.slug, "ingredient:update", data.key, data.token)
    ingredient = PlanRepo.get_ingredient(ctx.db, event, data.id)
    old_data = row_to_dict(ingredient)

    if data.name is not None:
        ingredient.name = data.name
    if data.quantity is not None:
        ingredient.quantity = data.quantity or None
    if data.checked is not None:
        ingredient.checked = data.checked

    log_change(ctx.db, "update", "ingredients", ingredient.id, old_data, ingredient, ctx)
    commit_and_revalidate(ctx, data.slug)
    return IngredientRead.model_validate(ingredient)


@create_safe_action(DeleteByIdInput)
def delete_ingredient_action(ctx: ActionContext, data: DeleteByIdInput) -> dict:
    event, _ = verify_access(ctx, data.slug, "ingredient:delete", data.key, data.token)
    ingredient = PlanRepo.get_ingredient(ctx.db, event, data.id)

    log_change(ctx.db, "delete", "ingredients", ingredient.id, ingredient, None, ctx)
    ctx.db.delete(ingredient)
    commit_and_revalidate(ctx, data.slug)
    return {"success": True}


@create_safe_action(DeleteAllIngredientsInput)
def delete_all_ingredients_action(ctx: ActionContext, data: DeleteAllIngredientsInput) -> dict:
    event, _ = verify_access(ctx, data.slug, "ingredient:delete", data.key, data.token)
    db = ctx.db
    item = PlanRepo.get_item(db, event, data.item_id)

    deleted = db.query(Ingredient).filter(Ingredient.item_id == item.id).delete(synchronize_session=False)
    item.cache_id = None
    log_change(db, "update", "items", item.id, None, item, ctx)
    commit_and_revalidate(ctx, data.slug)
    return {"success": True, "deleted": deleted}


@create_safe_action(SaveAIFeedbackInput)
def save_ai_feedback_action(ctx: ActionContext, data: SaveAIFeedbackInput) -> dict:
    event, _ = verify_access(ctx, data.slug, "event:read", data.key, data.token)
    db = ctx.db
    item = PlanRepo.get_item(db, event, data.item_id)

    db.add(AIFeedback(
        item_id=item.id,
        cache_id=item.cache_id,
        rating=data.rating,
        comment=data.comment or None,
        user_id=ctx.user.id if ctx.user else None,
    ))
    db.commit()
    logger.info(f"AI feedback for item {item.id}: {data.rating}/5")
    return {"success": True}
