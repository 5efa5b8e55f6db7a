"""
Group hierarchy over the timeline's parent links.

A layer is a group exactly when some other layer names it as parent;
there is no stored group flag.
"""

import copy
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from .errors import NotFoundError
from .models import CascadePolicy, IndentedLayer, Layer

if TYPE_CHECKING:
    from .timeline_model import TimelineModel

logger = logging.getLogger(__name__)


def chain_contains(parent_of: Dict[str, Optional[str]], start: Optional[str], target: str) -> bool:
    """
    Walk parent links upward from ``start`` and report whether ``target`` is hit.

    A chain that loops back on itself without reaching ``target`` also
    counts as a hit, since any such state is already cyclic.
    """
    seen = set()
    current = start
    while current is not None:
        if current == target or current in seen:
            return True
        seen.add(current)
        current = parent_of.get(current)
    return False


def find_cycle(parent_of: Dict[str, Optional[str]]) -> Optional[str]:
    """Return the id of some layer that is its own ancestor, or None."""
    for layer_id, parent_id in parent_of.items():
        if parent_id is not None and chain_contains(parent_of, parent_id, layer_id):
            return layer_id
    return None


class GroupHierarchy:
    """
    Parent/child semantics layered on a TimelineModel.

    Read methods return copies; mutations go through the model so they are
    validated and published like any other edit.
    """

    def __init__(self, model: "TimelineModel"):
        self._model = model

    # === Queries ===

    def is_group(self, layer) -> bool:
        """True if at least one other layer has this layer as its parent."""
        layer_id = layer if isinstance(layer, str) else layer.id
        return any(l.parent_id == layer_id for l in self._model._layers)

    def get_child_layers(self, group_id: str) -> List[Layer]:
        children = [l for l in self._model._layers if l.parent_id == group_id]
        return [copy.deepcopy(l) for l in self._sorted(children)]

    def get_parent_group(self, layer_id: str) -> Optional[Layer]:
        layer = self._model._find_layer(layer_id)
        if layer is None or layer.parent_id is None:
            return None
        parent = self._model._find_layer(layer.parent_id)
        return copy.deepcopy(parent) if parent else None

    def get_top_level_groups(self) -> List[Layer]:
        """Groups that are not themselves inside another group."""
        return [
            copy.deepcopy(l)
            for l in self._sorted(self._model._layers)
            if l.parent_id is None and self.is_group(l)
        ]

    def is_child_of_group(self, layer_id: str, group_id: str) -> bool:
        layer = self._model._find_layer(layer_id)
        return layer is not None and layer.parent_id == group_id

    def get_descendant_ids(self, layer_id: str) -> List[str]:
        """All layers below ``layer_id``, depth first in sibling order."""
        children = self._children_map()
        result = []
        stack = list(reversed(children.get(layer_id, [])))
        while stack:
            child = stack.pop()
            result.append(child.id)
            stack.extend(reversed(children.get(child.id, [])))
        return result

    def would_create_circular_reference(self, layer_id: str, candidate_parent_id: Optional[str]) -> bool:
        """
        Check whether parenting ``layer_id`` under ``candidate_parent_id`` makes a cycle.

        Walks the candidate's ancestor chain; moving a layer under itself or
        under any of its descendants is circular. Moving to the root never is.
        """
        if candidate_parent_id is None:
            return False
        parent_of = {l.id: l.parent_id for l in self._model._layers}
        return chain_contains(parent_of, candidate_parent_id, layer_id)

    def get_layers_with_indentation(self) -> List[IndentedLayer]:
        """
        Flatten the layer tree for the layer list panel.

        Depth first from the root layers, siblings in ``index`` order.
        Collapsed layers are listed but their subtrees are skipped.
        """
        children = self._children_map()
        result: List[IndentedLayer] = []

        def visit(layer: Layer, depth: int):
            result.append(IndentedLayer(copy.deepcopy(layer), depth))
            if not layer.is_expanded:
                return
            for child in children.get(layer.id, []):
                visit(child, depth + 1)

        for root in children.get(None, []):
            visit(root, 0)
        return result

    # === Mutations ===

    def create_group(self, name: str, member_layer_ids: List[str]) -> str:
        """
        Create a group layer and move the given layers into it.

        Args:
            name: Name for the new group layer
            member_layer_ids: Layers to reparent under the group

        Returns:
            The new group's id

        Raises:
            ValueError: member list is empty
            NotFoundError: a member id does not exist (nothing is created)
        """
        if not member_layer_ids:
            raise ValueError("Cannot create a group with no layers selected")
        for layer_id in member_layer_ids:
            if self._model._find_layer(layer_id) is None:
                raise NotFoundError("Layer", layer_id)

        group = self._model._create_group_layer(name, list(dict.fromkeys(member_layer_ids)))
        logger.info(f"Created group {group.name} ({group.id}) with {len(member_layer_ids)} layers")
        return group.id

    def delete_group(self, group_id: str, preserve_children: bool) -> bool:
        """
        Delete a group layer.

        Args:
            group_id: Group layer ID
            preserve_children: Move children up to the group's parent if True,
                delete them recursively if False

        Returns:
            True if deleted, False if the group does not exist
        """
        policy = CascadePolicy.REPARENT_CHILDREN if preserve_children else CascadePolicy.DELETE_CHILDREN
        return self._model.remove_layer(group_id, policy)

    def rename_group(self, group_id: str, new_name: str) -> Layer:
        return self._model.update_layer(group_id, name=new_name)

    def toggle_group_expanded(self, group_id: str) -> Layer:
        layer = self._model._find_layer(group_id)
        if layer is None:
            raise NotFoundError("Layer", group_id)
        return self._model.update_layer(group_id, is_expanded=not layer.is_expanded)

    def add_layer_to_group(self, layer_id: str, group_id: str) -> Layer:
        """Reparent a layer under a group; raises CyclicGroupError on cycles."""
        return self._model.update_layer(layer_id, parent_id=group_id)

    def remove_layer_from_group(self, layer_id: str) -> bool:
        """Move a layer back to the root. Returns False if it was not in a group."""
        layer = self._model._find_layer(layer_id)
        if layer is None:
            raise NotFoundError("Layer", layer_id)
        if layer.parent_id is None:
            logger.debug(f"Layer {layer_id} is not in a group")
            return False
        self._model.update_layer(layer_id, parent_id=None)
        return True

    # === Private Methods ===

    @staticmethod
    def _sorted(layers: List[Layer]) -> List[Layer]:
        # sorted() is stable, so equal indices keep insertion order
        return sorted(layers, key=lambda l: l.index)

    def _children_map(self) -> Dict[Optional[str], List[Layer]]:
        children: Dict[Optional[str], List[Layer]] = {}
        for layer in self._sorted(self._model._layers):
            children.setdefault(layer.parent_id, []).append(layer)
        return children
