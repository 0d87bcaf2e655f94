"""EncodeStep - data URL assembly and output ceiling."""

import logging
from typing import Optional

from ...images.encoder import to_data_url
from ...images.policy import check_output_ceiling
from ..base import EventEmitter, ImageContext

logger = logging.getLogger(__name__)


class EncodeStep:
    """
    Pipeline step that builds the data URL for the transcoded bytes.

    Sets ctx.data_url only when encoding succeeded and the result fits
    under the hard character ceiling; otherwise the image is skipped with
    an error and stays external.
    """

    name = "encode"

    async def execute(
        self,
        ctx: ImageContext,
        emit: Optional[EventEmitter] = None,
    ) -> ImageContext:
        if ctx.transcoded is None:
            raise ValueError("no transcoded image to encode")

        data_url = to_data_url(ctx.transcoded.data, ctx.transcoded.mime_type)
        if not data_url:
            return ctx.skip("encode failed", error="Base64 encoding failed")

        overflow = check_output_ceiling(data_url)
        if overflow:
            logger.warning(f"{overflow}. Falling back to external link.")
            return ctx.skip("output too large", error=overflow)

        ctx.data_url = data_url
        return ctx
