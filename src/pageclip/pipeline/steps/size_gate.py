"""SizeGateStep - smart-mode size threshold."""

import logging
from typing import Optional

from ...images.policy import exceeds_size_threshold
from ..base import EventEmitter, ImageContext

logger = logging.getLogger(__name__)


class SizeGateStep:
    """
    Keeps oversized non-featured images external under the smart preference.

    The remote size is only known after the download, so this runs right
    after FetchImageStep. Rejection is a policy outcome, not an error.
    """

    name = "size_gate"

    async def execute(
        self,
        ctx: ImageContext,
        emit: Optional[EventEmitter] = None,
    ) -> ImageContext:
        if ctx.data is None:
            return ctx

        if exceeds_size_threshold(ctx.reference, ctx.settings, len(ctx.data)):
            logger.debug(
                f"Keeping image external: {len(ctx.data)} bytes exceeds "
                f"threshold of {ctx.settings.size_threshold_bytes}"
            )
            ctx.skip(f"exceeds size threshold ({len(ctx.data)} > {ctx.settings.size_threshold_bytes} bytes)")

        return ctx
