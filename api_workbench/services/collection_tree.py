"""
Collection tree service for building recursive collection structures.

Provides functions for:
- Building the ordered collection tree with the requests of each node
- Detecting moves that would make a collection its own ancestor
- Listing a collection's descendants
"""

import uuid
from collections import defaultdict
from typing import Optional

from ..schemas.collection import Collection, CollectionRequestSummary, CollectionTreeNode
from ..schemas.request import Request


def build_collection_tree(
    collections: list[Collection],
    requests: list[Request],
) -> list[CollectionTreeNode]:
    """
    Build a recursive collection tree from flat lists of collections and requests.

    Children and requests are ordered by ``sort_order``, then by name.

    Returns:
        The root-level nodes with nested children and requests.
    """
    children_map: dict[Optional[uuid.UUID], list[Collection]] = defaultdict(list)
    for collection in collections:
        children_map[collection.parent_id].append(collection)

    for parent_id in children_map:
        children_map[parent_id].sort(key=lambda c: (c.sort_order, c.name))

    request_map: dict[uuid.UUID, list[Request]] = defaultdict(list)
    for request in requests:
        if request.collection_id is not None:
            request_map[request.collection_id].append(request)

    def _build_subtree(parent_id: Optional[uuid.UUID]) -> list[CollectionTreeNode]:
        return [
            CollectionTreeNode(
                id=collection.id,
                name=collection.name,
                parent_id=collection.parent_id,
                sort_order=collection.sort_order,
                children=_build_subtree(collection.id),
                requests=[
                    CollectionRequestSummary(
                        id=request.id,
                        name=request.name,
                        request_type=request.request_type,
                        url=request.url,
                        sort_order=request.sort_order,
                    )
                    for request in sorted(
                        request_map.get(collection.id, []),
                        key=lambda r: (r.sort_order, r.name),
                    )
                ],
            )
            for collection in children_map.get(parent_id, [])
        ]

    return _build_subtree(None)


def detect_circular_reference(
    collection_id: uuid.UUID,
    new_parent_id: uuid.UUID,
    collections: list[Collection],
) -> bool:
    """
    Detect if moving a collection under a new parent would create a cycle.

    True when the new parent is the collection itself or one of its descendants.
    """
    if new_parent_id == collection_id:
        return True

    parents = {collection.id: collection.parent_id for collection in collections}
    current_id: Optional[uuid.UUID] = new_parent_id
    seen: set[uuid.UUID] = set()

    while current_id is not None and current_id not in seen:
        if current_id == collection_id:
            return True
        seen.add(current_id)
        current_id = parents.get(current_id)

    return False


def descendant_ids(collection_id: uuid.UUID, collections: list[Collection]) -> list[uuid.UUID]:
    """Ids of every collection below ``collection_id``, depth first."""
    children_map: dict[Optional[uuid.UUID], list[uuid.UUID]] = defaultdict(list)
    for collection in collections:
        children_map[collection.parent_id].append(collection.id)

    result: list[uuid.UUID] = []
    stack = list(children_map.get(collection_id, []))
    while stack:
        current = stack.pop()
        result.append(current)
        stack.extend(children_map.get(current, []))
    return result
