import pytest
from sqlalchemy.exc import OperationalError

from brigade.errors import NotFoundError, PermissionDeniedError, StorageError, ValidationError
from brigade.models import Recipe, RecipeIngredient, RecipeStep
from brigade.schemas.recipe import RecipeCreate, RecipeDetail, RecipeUpdate
from brigade.services import recipes
from conftest import subject_for


def recipe_payload(category_id, name="Risotto", min_role="staff", **overrides):
    data = {
        "name": name,
        "description": "Creamy rice",
        "category_id": category_id,
        "difficulty": "medium",
        "min_role": min_role,
        "ingredients": [
            {"name": "Arborio rice", "quantity": 300, "unit": "g"},
            {"name": "Stock", "quantity": "1", "unit": "l"},
        ],
        "steps": [
            {"step_number": 5, "instruction": "Toast the rice"},
            {"step_number": 2, "instruction": "Add stock gradually"},
        ],
    }
    data.update(overrides)
    return RecipeCreate(**data)


class TestCreate:
    def test_chef_creates_with_ordered_children(self, db, make_user, category):
        chef = make_user("chef")
        recipe = recipes.create_recipe(db, recipe_payload(category.id), subject_for(chef))
        detail = RecipeDetail.model_validate(recipe)
        assert detail.created_by == chef.id
        assert detail.category_name == "Main Course"
        assert [(i.position, i.name, i.quantity) for i in detail.ingredients] == [
            (1, "Arborio rice", "300"),
            (2, "Stock", "1"),
        ]
        assert [(s.step_number, s.instruction) for s in detail.steps] == [
            (1, "Toast the rice"),
            (2, "Add stock gradually"),
        ]

    def test_null_optionals_take_defaults(self, db, make_user, category):
        chef = make_user("chef")
        payload = recipe_payload(category.id, min_role=None, prep_time=None, cook_time=None, servings=None)
        recipe = recipes.create_recipe(db, payload, subject_for(chef))
        assert (recipe.min_role, recipe.prep_time, recipe.cook_time, recipe.servings) == ("staff", 0, 0, 1)

    def test_staff_cannot_create(self, db, make_user, category):
        with pytest.raises(PermissionDeniedError):
            recipes.create_recipe(db, recipe_payload(category.id), subject_for(make_user("staff")))

    def test_unknown_category_rejected(self, db, make_user):
        with pytest.raises(ValidationError):
            recipes.create_recipe(db, recipe_payload(999), subject_for(make_user("chef")))

    def test_failed_commit_leaves_nothing_behind(self, db, make_user, category, monkeypatch):
        chef = make_user("chef")

        def broken_commit():
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(db, "commit", broken_commit)
        with pytest.raises(StorageError):
            recipes.create_recipe(db, recipe_payload(category.id), subject_for(chef))
        monkeypatch.undo()
        assert db.query(Recipe).count() == 0
        assert db.query(RecipeIngredient).count() == 0
        assert db.query(RecipeStep).count() == 0

    def test_creator_may_restrict_above_own_role(self, db, make_user, category):
        chef = make_user("chef")
        recipe = recipes.create_recipe(db, recipe_payload(category.id, min_role="admin"), subject_for(chef))
        assert recipe.min_role == "admin"
        with pytest.raises(NotFoundError):
            recipes.get_recipe_detail(db, recipe.id, subject_for(chef))


class TestVisibility:
    @pytest.fixture
    def catalogue(self, db, make_user, category):
        admin = subject_for(make_user("admin"))
        return {
            level: recipes.create_recipe(db, recipe_payload(category.id, name=level, min_role=level), admin).id
            for level in ("staff", "chef", "admin")
        }

    def test_staff_sees_only_staff_recipes(self, db, make_user, catalogue):
        items, total = recipes.list_recipes(db, subject_for(make_user("staff")))
        assert total == 1
        assert [item.name for item in items] == ["staff"]

    def test_chef_recipe_hidden_from_staff_detail(self, db, make_user, catalogue):
        staff = subject_for(make_user("staff"))
        with pytest.raises(NotFoundError) as excinfo:
            recipes.get_recipe_detail(db, catalogue["chef"], staff)
        assert excinfo.value.message == "Recipe not found"

    def test_admin_lists_newest_first(self, db, make_user, catalogue):
        items, total = recipes.list_recipes(db, subject_for(make_user("admin")))
        assert total == 3
        assert [item.name for item in items] == ["admin", "chef", "staff"]

    def test_search_and_category_filter(self, db, make_user, category, catalogue):
        super_admin = subject_for(make_user("super_admin"))
        items, total = recipes.list_recipes(db, super_admin, search="CHEF")
        assert [item.name for item in items] == ["chef"]
        _, total = recipes.list_recipes(db, super_admin, category_id=category.id + 1)
        assert total == 0

    def test_deactivated_recipe_disappears(self, db, make_user, catalogue):
        admin = subject_for(make_user("admin"))
        recipes.deactivate_recipe(db, catalogue["staff"], admin)
        _, total = recipes.list_recipes(db, admin)
        assert total == 2
        with pytest.raises(NotFoundError):
            recipes.get_recipe_detail(db, catalogue["staff"], admin)
        with pytest.raises(NotFoundError):
            recipes.deactivate_recipe(db, catalogue["staff"], admin)


class TestUpdateAndDelete:
    def test_update_replaces_steps_and_keeps_ingredients(self, db, make_user, category):
        chef = subject_for(make_user("chef"))
        created = recipes.create_recipe(db, recipe_payload(category.id), chef)
        previous, updated = recipes.update_recipe(
            db,
            created.id,
            RecipeUpdate(name="Mushroom risotto", steps=[{"instruction": "Do it all at once"}]),
            chef,
        )
        assert previous.name == "Risotto"
        detail = RecipeDetail.model_validate(updated)
        assert detail.name == "Mushroom risotto"
        assert [(s.step_number, s.instruction) for s in detail.steps] == [(1, "Do it all at once")]
        assert len(detail.ingredients) == 2
        assert db.query(RecipeStep).count() == 1

    def test_empty_update_rejected(self, db, make_user, category):
        chef = subject_for(make_user("chef"))
        created = recipes.create_recipe(db, recipe_payload(category.id), chef)
        with pytest.raises(ValidationError):
            recipes.update_recipe(db, created.id, RecipeUpdate(), chef)

    def test_chef_cannot_delete(self, db, make_user, category):
        chef = subject_for(make_user("chef"))
        created = recipes.create_recipe(db, recipe_payload(category.id), chef)
        with pytest.raises(PermissionDeniedError):
            recipes.deactivate_recipe(db, created.id, chef)

    def test_admin_cannot_delete_recipe_hidden_above_rank(self, db, make_user, category):
        owner = subject_for(make_user("super_admin"))
        admin = subject_for(make_user("admin"))
        created = recipes.create_recipe(db, recipe_payload(category.id, min_role="super_admin"), owner)
        with pytest.raises(NotFoundError):
            recipes.get_recipe_detail(db, created.id, admin)
        with pytest.raises(NotFoundError) as excinfo:
            recipes.deactivate_recipe(db, created.id, admin)
        assert excinfo.value.message == "Recipe not found"
        db.expire_all()
        assert db.query(Recipe).filter(Recipe.id == created.id).one().is_active is True


class TestSearch:
    def test_wildcards_in_term_match_literally(self, db, make_user, category):
        chef = subject_for(make_user("chef"))
        recipes.create_recipe(db, recipe_payload(category.id, name="100% rye bread"), chef)
        recipes.create_recipe(db, recipe_payload(category.id, name="Sour_dough"), chef)
        recipes.create_recipe(db, recipe_payload(category.id, name="Plain loaf"), chef)

        items, _ = recipes.list_recipes(db, chef, search="%")
        assert [item.name for item in items] == ["100% rye bread"]
        items, _ = recipes.list_recipes(db, chef, search="e_d")
        assert items == []
        items, _ = recipes.list_recipes(db, chef, search="_dough")
        assert [item.name for item in items] == ["Sour_dough"]
