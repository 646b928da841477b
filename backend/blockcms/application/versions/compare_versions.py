from typing import Any, Dict
from blockcms.models.story import METADATA_FIELDS, Story
from blockcms.domain.exceptions import VersionNotFoundError
from blockcms.application.versions.list_versions import get_version

COMPARED_FIELDS = ("content",) + METADATA_FIELDS


def _field_value(version, field):
    if field == "content":
        return version.content
    return (version.metadata_snapshot or {}).get(field)


def _summary(version):
    return {
        "version_number": version.version_number,
        "created_at": version.created_at.isoformat() if version.created_at else None,
        "created_by": version.created_by,
        "reason": version.reason,
    }


def compare_versions(*, story: Story, version_a: int, version_b: int) -> Dict[str, Any]:
    """
    Field-by-field comparison of two versions of the same story.

    Each compared field reports whether it changed along with both values;
    JSON values compare structurally.
    """
    versions = {}
    for number in (version_a, version_b):
        version = get_version(story=story, version_number=number)
        if version is None:
            raise VersionNotFoundError(f"Version {number} of story {story.id} not found")
        versions[number] = version

    a, b = versions[version_a], versions[version_b]

    fields = {}
    for field in COMPARED_FIELDS:
        value_a, value_b = _field_value(a, field), _field_value(b, field)
        fields[field] = {
            "changed": value_a != value_b,
            "value_a": value_a,
            "value_b": value_b,
        }

    return {
        "fields": fields,
        "metadata": {
            "version_a": _summary(a),
            "version_b": _summary(b),
        },
    }
