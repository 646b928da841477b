"""
Translation parity between a source tree and a language variant.

Blocks are matched by `_uid`: a variant block that reuses a source id is
the translation of that block. Nothing here touches the database.
"""
import copy
import hashlib
import json
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .content_tree import body_of, index_blocks, is_block, is_block_list, iter_blocks, leaf_items
from .schema import SchemaCatalog
from .values import is_blank

DEFAULT_SYNC_FIELDS = ("blocks", "order")


def _is_translatable(schemas, component, field_name):
    if not schemas:
        return True
    schema = schemas.get(component)
    if schema is None or field_name not in schema.fields:
        return True
    return schema.fields[field_name].translatable


def _translatable_leaves(source, variant, schemas):
    """(block, field, translated) for each non-empty translatable source leaf."""
    variant_index = index_blocks(variant)

    for block in iter_blocks(source):
        counterpart = variant_index.get(block["_uid"])
        for key, value in leaf_items(block):
            if is_blank(value) or not _is_translatable(schemas, block.get("component"), key):
                continue
            translated = counterpart is not None and not is_blank(counterpart.get(key))
            yield block, key, translated


def completion_percentage(source: Any, variant: Any, schemas: Optional[SchemaCatalog] = None) -> float:
    """
    Share of the source's non-empty leaf fields that have a non-empty
    counterpart (same block id, same field) in the variant, 0..100.

    With `schemas`, fields marked `translatable: false` are not counted.
    """
    total = translated = 0
    for _block, _key, done in _translatable_leaves(source, variant, schemas):
        total += 1
        translated += done

    if total == 0:
        return 100.0
    return round(translated * 100.0 / total, 2)


def untranslated_fields(source: Any, variant: Any, schemas: Optional[SchemaCatalog] = None) -> List[Dict[str, str]]:
    """The source leaves still missing from the variant, in tree order."""
    return [
        {"_uid": block["_uid"], "component": block.get("component"), "field": key}
        for block, key, done in _translatable_leaves(source, variant, schemas)
        if not done
    ]


def needs_sync(source: Any, variant: Any) -> bool:
    """True when blocks were added to or removed from one side."""
    return set(index_blocks(source)) != set(index_blocks(variant))


# -------------------------------------------------
# Fingerprints
# -------------------------------------------------

def block_fingerprint(block: Mapping[str, Any]) -> str:
    children = {
        key: [child["_uid"] for child in value]
        for key, value in block.items()
        if is_block_list(value)
    }
    payload = {
        "component": block.get("component"),
        "fields": dict(leaf_items(block)),
        "children": children,
    }
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha1(encoded).hexdigest()


def compute_fingerprint(content: Any) -> Dict[str, str]:
    return {uid: block_fingerprint(block) for uid, block in index_blocks(content).items()}


def diff_fingerprints(old: Mapping[str, str], new: Mapping[str, str]) -> Dict[str, List[str]]:
    old, new = old or {}, new or {}
    return {
        "added": sorted(set(new) - set(old)),
        "removed": sorted(set(old) - set(new)),
        "changed": sorted(uid for uid in set(old) & set(new) if old[uid] != new[uid]),
    }


# -------------------------------------------------
# Structure sync
# -------------------------------------------------

class _Sync:
    def __init__(self, variant, fields, schemas):
        self.variant_index = index_blocks(variant)
        self.fields = set(fields)
        self.schemas = schemas

    def sync_list(self, source_blocks, variant_blocks):
        source_blocks = [b for b in source_blocks if is_block(b)]
        variant_blocks = [b for b in variant_blocks if is_block(b)]
        source_by_uid = {b["_uid"]: b for b in source_blocks}
        variant_by_uid = {b["_uid"]: b for b in variant_blocks}
        add_remove = "blocks" in self.fields
        result = []

        if "order" in self.fields:
            for src in source_blocks:
                existing = variant_by_uid.get(src["_uid"])
                if existing is None and add_remove:
                    # may have moved to this level in the source
                    existing = self.variant_index.get(src["_uid"])
                if existing is not None:
                    result.append(self.sync_block(src, existing))
                elif add_remove:
                    result.append(copy.deepcopy(src))
            if not add_remove:
                result.extend(copy.deepcopy(b) for b in variant_blocks if b["_uid"] not in source_by_uid)
            return result

        for existing in variant_blocks:
            src = source_by_uid.get(existing["_uid"])
            if src is not None:
                result.append(self.sync_block(src, existing))
            elif not add_remove:
                result.append(copy.deepcopy(existing))
        if add_remove:
            for src in source_blocks:
                if src["_uid"] in variant_by_uid:
                    continue
                moved = self.variant_index.get(src["_uid"])
                result.append(self.sync_block(src, moved) if moved is not None else copy.deepcopy(src))
        return result

    def sync_block(self, src, existing):
        block = copy.deepcopy(existing)
        block["component"] = src.get("component")
        component = src.get("component")

        for key, value in src.items():
            if key in ("_uid", "component"):
                continue
            if is_block_list(value) or (isinstance(value, list) and is_block_list(existing.get(key))):
                current = existing.get(key)
                block[key] = self.sync_list(value, current if isinstance(current, list) else [])
            elif key in self.fields or not _is_translatable(self.schemas, component, key):
                block[key] = copy.deepcopy(value)

        return block


def sync_structure(
    source: Any,
    variant: Any,
    fields: Iterable[str] = DEFAULT_SYNC_FIELDS,
    schemas: Optional[SchemaCatalog] = None,
) -> Dict[str, Any]:
    """
    Return a copy of `variant` whose structure follows `source`.

    `fields` selects what is copied from the source:

    - "blocks": add blocks missing from the variant (copied from the
      source) and drop blocks the source no longer has;
    - "order": order blocks as in the source;
    - any other name: copy that field's value from the source block.

    Translated leaf values survive wherever the block id exists on both
    sides. Neither input is modified.
    """
    syncer = _Sync(variant, fields, schemas)
    result = copy.deepcopy(variant) if isinstance(variant, Mapping) else {}
    result["body"] = syncer.sync_list(body_of(source), body_of(variant))
    return result
