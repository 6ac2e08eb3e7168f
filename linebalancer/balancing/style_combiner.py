"""
Multi-Style Combiner
====================

Merges several styles into one pseudo-style for combined-line allocation.

Operations are ordered by (machine type ascending, SAM descending) so same-machine
work clusters together and long operations come first. This only primes the greedy
allocator; it is not an optimal packing.
"""

import logging
from typing import Optional, Sequence

from .errors import EmptyInput, InvalidParameter
from .models import AdjustedStyle, CombinedStyle, SourcedOperation, Style
from .work_content import WorkContentAdjuster

logger = logging.getLogger(__name__)


class MultiStyleCombiner:

    def __init__(self, adjuster: Optional[WorkContentAdjuster] = None):
        self.adjuster = adjuster or WorkContentAdjuster()

    def combine(
        self,
        styles: Sequence[Style],
        adjusted_styles: Optional[Sequence[AdjustedStyle]] = None,
    ) -> CombinedStyle:
        """
        Build the combined pseudo-style.

        ``adjusted_styles`` (same order as ``styles``) supplies the member adjusted
        work contents, e.g. from a capacity plan; otherwise they are computed
        without the output-dependent batch term.
        """
        if not styles:
            raise EmptyInput("No styles to combine")
        if adjusted_styles is None:
            adjusted_styles = [self.adjuster.adjust_without_output(style) for style in styles]
        elif len(adjusted_styles) != len(styles):
            raise InvalidParameter("adjusted_styles", len(adjusted_styles),
                                   f"expected one per style ({len(styles)})")

        tagged = [
            SourcedOperation(operation=op, style_index=index, style_name=style.name)
            for index, style in enumerate(styles)
            for op in style.operations
        ]
        tagged.sort(key=lambda item: (item.operation.machine_type, -item.operation.standard_time))

        combined = CombinedStyle(
            name=" + ".join(style.name for style in styles),
            operations=tuple(tagged),
            adjusted_work_content=sum(a.adjusted_work_content for a in adjusted_styles),
            style_names=tuple(style.name for style in styles),
        )
        logger.debug(
            f"Combined {len(styles)} styles into {len(tagged)} operations "
            f"(adjusted work content {combined.adjusted_work_content:.3f})"
        )
        return combined
