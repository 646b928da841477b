import copy
import itertools

import pytest

from blockcms import create_app
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.application.components.save_component import save_component
from blockcms.application.validation import get_catalog, get_schema_validator

TENANT = "tenant-1"

COMPONENT_SCHEMAS = {
    "teaser": {
        "headline": {"type": "text", "required": True, "max_length": 80},
        "subline": {"type": "text"},
    },
    "grid": {
        "columns": {"type": "blocks", "component_whitelist": ["feature", "teaser"], "maximum": 4},
    },
    "feature": {
        "name": {"type": "text", "required": True},
        "count": {"type": "number", "min": 0, "max": 100, "translatable": False},
    },
}

SAMPLE_CONTENT = {
    "body": [
        {"_uid": "b1", "component": "teaser", "headline": "Hello", "subline": "World"},
        {
            "_uid": "b2",
            "component": "grid",
            "columns": [
                {"_uid": "b3", "component": "feature", "name": "Fast", "count": 3},
            ],
        },
    ]
}

_slugs = itertools.count(1)


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def catalog(app):
    return get_catalog()


@pytest.fixture
def schema_validator(app):
    return get_schema_validator()


@pytest.fixture
def tenant_id():
    return TENANT


@pytest.fixture
def components(app, tenant_id):
    return {
        name: save_component(tenant_id=tenant_id, actor_id="admin", data={"name": name, "schema": schema})
        for name, schema in COMPONENT_SCHEMAS.items()
    }


@pytest.fixture
def make_story(app, tenant_id):
    def _make(content=None, **fields):
        story = Story(
            tenant_id=fields.pop("tenant_id", tenant_id),
            name=fields.pop("name", "Home"),
            slug=fields.pop("slug", f"home-{next(_slugs)}"),
            content=copy.deepcopy(content if content is not None else SAMPLE_CONTENT),
            **fields,
        )
        db.session.add(story)
        db.session.commit()
        return story

    return _make


@pytest.fixture
def story(make_story):
    return make_story()


@pytest.fixture
def sample_content():
    return copy.deepcopy(SAMPLE_CONTENT)
