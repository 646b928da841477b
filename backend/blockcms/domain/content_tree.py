"""Read helpers over plain content trees (`{"body": [block, ...]}`)."""
from typing import Any, Dict, Iterator, Mapping, Tuple

RESERVED_KEYS = ("_uid", "component", "_editable")


def is_block(item: Any) -> bool:
    return isinstance(item, Mapping) and isinstance(item.get("_uid"), str)


def is_block_list(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(is_block(item) for item in value)


def body_of(content: Any) -> list:
    if isinstance(content, Mapping) and isinstance(content.get("body"), list):
        return content["body"]
    return []


def iter_blocks(content: Any, max_depth: int = 64) -> Iterator[Mapping[str, Any]]:
    """Depth-first, document order. Stops descending past `max_depth`."""
    stack = [(block, 1) for block in reversed(body_of(content))]
    while stack:
        block, depth = stack.pop()
        if not is_block(block):
            continue
        yield block
        if depth >= max_depth:
            continue
        children = []
        for key, value in block.items():
            if key not in RESERVED_KEYS and is_block_list(value):
                children.extend(value)
        stack.extend((child, depth + 1) for child in reversed(children))


def index_blocks(content: Any) -> Dict[str, Mapping[str, Any]]:
    """`_uid` -> block. On duplicate ids the first occurrence wins."""
    index: Dict[str, Mapping[str, Any]] = {}
    for block in iter_blocks(content):
        index.setdefault(block["_uid"], block)
    return index


def leaf_items(block: Mapping[str, Any]) -> Iterator[Tuple[str, Any]]:
    """Non-container fields of a block."""
    for key, value in block.items():
        if key in RESERVED_KEYS or is_block_list(value):
            continue
        yield key, value
