"""
═══════════════════════════════════════════════════════════════════════════════════════════════════════
                    WORK CONTENT ADJUSTER — Overhead-Inclusive Work Content
═══════════════════════════════════════════════════════════════════════════════════════════════════════

Turns a style's raw operation list into an adjusted work content figure.

Model:
─────────────────────────────────────────────────────────────────────────────────────────────────────

    W      : base work content = Σ SAM
    n      : operation count
    Q      : output the batch term is evaluated at
    B      : batch size

Movement:
    custom edges  → Σ edge.time × distance_factor
    otherwise     → (n - 1) × time_per_step × distance_factor

Batch (additive):
    k = ⌈Q / B⌉
    batch = (k × setup + k × transport + (Q × W / processing_factor - Q × W)) / Q

Batch (efficiency gain):
    batch = W × (1 - efficiency_factor / 100) + setup / B - W

Handling:
    handling = W × pct / 100 × complexity × (1 + 0.05 × |special requirements|)

Adjusted:
    W' = W + movement + batch + handling

═══════════════════════════════════════════════════════════════════════════════════════════════════════
"""

import logging
import math
from typing import Optional

from ..feature_flags import BatchImpactModel, FeatureFlags
from .errors import InvalidParameter, require_non_negative, require_positive
from .models import (
    COMPLEXITY_FACTORS,
    SPECIAL_HANDLING_IMPACT,
    AdjustedStyle,
    OverheadConfig,
    Style,
)

logger = logging.getLogger(__name__)


class WorkContentAdjuster:
    """
    Computes movement, batch and handling overhead for a style.

    The batch model comes from ``OverheadConfig.batch_model`` when set,
    otherwise from the ``LINEBAL_BATCH_MODEL`` feature flag.
    """

    def __init__(self, overheads: Optional[OverheadConfig] = None):
        self.overheads = overheads or OverheadConfig()
        self._validate(self.overheads)
        self.batch_model = self.overheads.batch_model or FeatureFlags.get_batch_model()

    @staticmethod
    def _validate(config: OverheadConfig) -> None:
        require_positive("batch_size", config.batch_size)
        require_non_negative("batch_setup_time", config.batch_setup_time)
        require_non_negative("batch_transport_time", config.batch_transport_time)
        require_positive("batch_processing_factor", config.batch_processing_factor)
        if config.batch_processing_factor > 1:
            raise InvalidParameter("batch_processing_factor", config.batch_processing_factor,
                                   "must be in (0, 1]")
        require_non_negative("batch_efficiency_factor", config.batch_efficiency_factor)
        if config.batch_efficiency_factor >= 100:
            raise InvalidParameter("batch_efficiency_factor", config.batch_efficiency_factor,
                                   "must be in [0, 100)")
        require_non_negative("movement_time_per_step", config.movement_time_per_step)
        require_positive("movement_distance_factor", config.movement_distance_factor)
        require_non_negative("handling_overhead_percentage", config.handling_overhead_percentage)

    # ═══════════════════════════════════════════════════════════════════════════
    # COMPONENTS
    # ═══════════════════════════════════════════════════════════════════════════

    def movement_time(self, style: Style) -> float:
        config = self.overheads
        if config.use_custom_movement_times and style.movement_edges:
            return sum(edge.time for edge in style.movement_edges) * config.movement_distance_factor
        if style.operation_count <= 1:
            return 0.0
        return (style.operation_count - 1) * config.movement_time_per_step * config.movement_distance_factor

    def handling_overhead(self, style: Style) -> float:
        config = self.overheads
        complexity = COMPLEXITY_FACTORS[config.material_complexity]
        special = 1 + SPECIAL_HANDLING_IMPACT * len(config.special_handling_requirements)
        return style.base_work_content * config.handling_overhead_percentage / 100 * complexity * special

    @property
    def batch_depends_on_output(self) -> bool:
        """
        True when the batch term varies with output.

        Only the additive model with some setup, transport or processing loss does.
        """
        if self.batch_model != BatchImpactModel.ADDITIVE:
            return False
        config = self.overheads
        return (
            config.batch_setup_time > 0
            or config.batch_transport_time > 0
            or config.batch_processing_factor != 1
        )

    def batch_impact(self, style: Style, output: Optional[int] = None) -> float:
        """
        Per-unit batch overhead in minutes.

        Raises InvalidParameter when the additive model needs an output and
        ``output`` is missing or not positive.
        """
        config = self.overheads
        base = style.base_work_content

        if self.batch_model == BatchImpactModel.EFFICIENCY_GAIN:
            adjusted_base = base * (1 - config.batch_efficiency_factor / 100)
            return adjusted_base + config.batch_setup_time / config.batch_size - base

        if not self.batch_depends_on_output:
            return 0.0
        if output is None or output <= 0:
            raise InvalidParameter("output", output,
                                   f"style '{style.name}' needs a positive output for batch overhead")

        batches = math.ceil(output / config.batch_size)
        setup = batches * config.batch_setup_time
        transport = batches * config.batch_transport_time
        efficiency_loss = output * base / config.batch_processing_factor - output * base
        return (setup + transport + efficiency_loss) / output

    # ═══════════════════════════════════════════════════════════════════════════
    # ADJUSTMENT
    # ═══════════════════════════════════════════════════════════════════════════

    def adjust(self, style: Style, output: Optional[int] = None) -> AdjustedStyle:
        """Build the AdjustedStyle for ``style`` at ``output`` units per period."""
        adjusted = AdjustedStyle(
            style=style,
            movement_time=self.movement_time(style),
            batch_impact=self.batch_impact(style, output),
            handling_overhead=self.handling_overhead(style),
            batch_model=self.batch_model,
            output=output,
        )
        logger.debug(
            f"Style '{style.name}': base={adjusted.base_work_content:.3f} "
            f"movement={adjusted.movement_time:.3f} batch={adjusted.batch_impact:.3f} "
            f"handling={adjusted.handling_overhead:.3f} adjusted={adjusted.adjusted_work_content:.3f}"
        )
        return adjusted

    def adjust_without_output(self, style: Style) -> AdjustedStyle:
        """
        Adjusted style whose batch term is included only if it does not depend on output.

        Used to derive a cycle time before output shares are known.
        """
        if self.batch_depends_on_output:
            return AdjustedStyle(
                style=style,
                movement_time=self.movement_time(style),
                batch_impact=0.0,
                handling_overhead=self.handling_overhead(style),
                batch_model=self.batch_model,
            )
        return self.adjust(style)
