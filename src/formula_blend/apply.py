"""
Blend pass against a host document.

The host (an image editor, or any document model) is abstracted by
:py:class:`HostProtocol`. :py:func:`apply_formula` runs one complete pass:
compile the formula, resolve both layers, create the result layer, read the
pixels, composite and write the result back at the union rectangle.
"""

import logging
from typing import Any, Hashable, Optional, Protocol, Sequence

from attrs import define

from formula_blend.composite import CompositeResult, PixelSource, Rect, composite
from formula_blend.constants import RESULT_LAYER_NAME
from formula_blend.exceptions import EmptyIntersection, LayerNotFound
from formula_blend.expression import compile
from formula_blend.retry import RetryPolicy, host_conflict_policy

logger = logging.getLogger(__name__)


@define(frozen=True)
class LayerInfo:
    """Layer as enumerated by the host."""

    id: Hashable
    name: str
    bounds: Rect


class HostProtocol(Protocol):
    """
    Protocol defining the host document interface.

    Host operations may raise
    :py:class:`~formula_blend.exceptions.TransientHostConflict` (or an error
    mentioning "modal state") when another modal operation is in progress.
    """

    def canvas_rect(self) -> Rect:
        """Document bounds."""
        ...

    def layers(self) -> Sequence[LayerInfo]:
        """Flat list of the document layers."""
        ...

    def get_pixels(self, layer_id: Any, rect: Rect) -> PixelSource:
        """Read the RGBA pixels of a layer inside ``rect``."""
        ...

    def create_layer(self, name: str) -> Any:
        """Create an empty pixel layer and return its id."""
        ...

    def put_pixels(self, layer_id: Any, result: CompositeResult) -> None:
        """Write ``result`` into a layer at ``result.rect``."""
        ...


def find_layer(layers: Sequence[LayerInfo], layer_id: Any) -> LayerInfo:
    for layer in layers:
        if layer.id == layer_id:
            return layer
    raise LayerNotFound("Layer %r does not exist" % (layer_id,))


def apply_formula(
    host: HostProtocol,
    base_id: Any,
    blend_id: Any,
    formula: str,
    result_name: str = RESULT_LAYER_NAME,
    policy: Optional[RetryPolicy] = None,
) -> Any:
    """
    Blend two host layers with ``formula`` into a new layer.

    The base and blend layer may be the same layer. Nothing is created in the
    host when the formula does not compile or a layer is missing or empty.

    :param host: Host document.
    :param base_id: Id of the base (backdrop) layer.
    :param blend_id: Id of the blend (source) layer.
    :param formula: Formula text.
    :param result_name: Name of the created result layer.
    :param policy: Retry policy for layer creation, defaults to
        :py:func:`~formula_blend.retry.host_conflict_policy`.
    :return: Id of the result layer.
    """
    engine = compile(formula)

    canvas = host.canvas_rect()
    layers = host.layers()
    base_rect = find_layer(layers, base_id).bounds.clamp(canvas)
    blend_rect = find_layer(layers, blend_id).bounds.clamp(canvas)
    if base_rect.is_empty() or blend_rect.is_empty():
        raise EmptyIntersection("Selected layer is empty")

    policy = policy or host_conflict_policy()
    layer_id = policy.call(host.create_layer, result_name)
    logger.info("Created result layer %r (%s)", result_name, layer_id)

    base = host.get_pixels(base_id, base_rect)
    blend = host.get_pixels(blend_id, blend_rect)
    result = composite(base, blend, canvas, engine)
    host.put_pixels(layer_id, result)
    logger.info("Applied %r to layer %r at %r", formula, result_name, result.rect)
    return layer_id
