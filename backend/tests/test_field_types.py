import pytest

from blockcms.domain.field_types import CatalogBuilder, build_default_catalog, default_builder
from blockcms.domain.exceptions import SchemaDefinitionError


@pytest.fixture
def types():
    return build_default_catalog()


class TestCatalog:
    """Registration and lookup."""

    def test_builtin_types_registered(self, types):
        for name in ("text", "textarea", "richtext", "markdown", "number", "boolean", "select",
                     "multiselect", "email", "url", "date", "datetime", "asset", "blocks",
                     "link", "color", "json", "table"):
            assert types.has_type(name), name

    def test_categories(self, types):
        assert "basic" in types.categories()
        assert set(types.by_category("datetime")) == {"date", "datetime"}

    def test_custom_type_and_validator_override(self):
        def shout(value, kind, constraints):
            return None if value.isupper() else "Value must be upper case"

        catalog = (
            default_builder()
            .register("slug", {"label": "Slug", "properties": {"prefix": {"type": "string"}}})
            .register_validator("text", shout)
            .build()
        )

        assert catalog.get("slug").category == "custom"
        assert catalog.validate("slug", "anything") is None
        assert catalog.validate("text", "quiet") == "Value must be upper case"
        assert catalog.validate("text", "LOUD") is None

    def test_override_for_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            CatalogBuilder().register_validator("nope", lambda v, k, c: None).build()

    def test_built_catalog_is_not_affected_by_builder(self):
        builder = default_builder()
        catalog = builder.build()
        builder.register("later", {})
        assert not catalog.has_type("later")

    def test_unknown_type(self, types):
        assert types.validate("hologram", "x") == "Unknown field type: hologram"
        with pytest.raises(SchemaDefinitionError):
            types.schema_for("hologram")

    def test_schema_for_rejects_extra_keys(self, types):
        descriptor = types.schema_for("number")
        assert descriptor["additionalProperties"] is False
        assert "max" in descriptor["properties"]
        assert "required" in descriptor["properties"]


class TestValidators:
    def test_number_bounds(self, types):
        constraints = {"min": 0, "max": 100}
        assert types.validate("number", 150, constraints) == "Value exceeds 100"
        assert types.validate("number", -1, constraints) == "Value must be at least 0"
        assert types.validate("number", "42", constraints) is None
        assert types.validate("number", "abc", constraints) == "Value must be numeric"
        assert types.validate("number", True, constraints) == "Value must be numeric"

    def test_number_decimals(self, types):
        assert types.validate("number", 1.25, {"decimals": 2}) is None
        assert "decimal places" in types.validate("number", 1.255, {"decimals": 2})

    def test_text_length_and_regex(self, types):
        assert types.validate("text", "ab", {"min_length": 3}) == "Value must be at least 3 characters"
        assert types.validate("text", "abcd", {"max_length": 3}) == "Value must not exceed 3 characters"
        assert types.validate("text", "HELLO", {"regex": "/^hello$/i"}) is None
        assert types.validate("text", "bye", {"regex": "^hello$"}) == "Value does not match required pattern"
        assert types.validate("text", 5) == "Value must be a string"

    def test_bad_constraint_reported_not_raised(self, types):
        message = types.validate("text", "abc", {"min_length": "three"})
        assert message.startswith("Field configuration is invalid")

    def test_email_and_url(self, types):
        assert types.validate("email", "ada@example.com") is None
        assert types.validate("email", "not-an-email") == "Value must be a valid email address"
        assert types.validate("url", "https://example.com/a") is None
        assert types.validate("url", "example") == "Value must be a valid URL"
        assert types.validate("url", "ftp://example.com", {"protocols": ["https"]}).startswith("URL protocol")

    def test_boolean(self, types):
        assert types.validate("boolean", False) is None
        assert types.validate("boolean", "true") is None
        assert types.validate("boolean", "yes") == "Value must be boolean"

    def test_select_and_multiselect(self, types):
        options = [{"name": "Red", "value": "red"}, {"name": "One", "value": 1}]
        assert types.validate("select", "red", {"options": options}) is None
        assert types.validate("select", 1, {"options": options}) is None
        assert types.validate("select", "blue", {"options": options}) == "Value must be one of the allowed options"
        assert types.validate("multiselect", ["red", "1"], {"options": options}) is None
        assert types.validate("multiselect", ["red", "blue"], {"options": options}) == "All values must be from the allowed options"
        assert types.validate("multiselect", ["red", 1], {"options": options, "max_selections": 1}) == "Select at most 1 options"

    def test_dates(self, types):
        assert types.validate("date", "2024-02-29") is None
        assert types.validate("date", "not a date") == "Value must be a valid date"
        assert types.validate("date", "2020-01-01", {"min_date": "2021-01-01"}) == "Value must not be before 2021-01-01"
        assert types.validate("datetime", "2030-01-01T10:00:00Z", {"max_datetime": "2029-12-31T00:00:00Z"}).startswith(
            "Value must not be after"
        )

    def test_asset_filetypes(self, types):
        assert types.validate("asset", {"filename": "hero.PNG"}, {"filetypes": ["images"]}) is None
        assert types.validate("asset", {"filename": "clip.mp4"}, {"filetypes": ["images"]}) == "File type 'mp4' is not allowed"
        assert types.validate("asset", {"alt": "x"}) == "Asset must have a filename"

    def test_link(self, types):
        assert types.validate("link", {"linktype": "story", "id": "abc"}) is None
        assert types.validate("link", {"linktype": "url", "url": "https://x.io"}, {"allow_external": False}) == "External links are not allowed"
        assert types.validate("link", {"linktype": "email", "email": "bad"}) == "Link must have a valid email address"

    def test_color_json_table(self, types):
        assert types.validate("color", "#ff0000") is None
        assert types.validate("color", "red") == "Value must be a valid hex color"
        assert types.validate("json", '{"a": 1}') is None
        assert types.validate("json", "{broken") == "Value must be valid JSON"
        columns = [{"name": "price", "required": True}]
        assert types.validate("table", [{"price": 3}], {"columns": columns}) is None
        assert types.validate("table", [{"price": ""}], {"columns": columns}) == "Row 1 is missing required column 'price'"

    def test_blocks_shape_only(self, types):
        assert types.validate("blocks", [{"_uid": "a", "component": "x"}]) is None
        assert types.validate("blocks", ["a"]) == "Each nested block must be an object"
        assert types.validate("blocks", "a") == "Value must be a list of blocks"
