"""Base classes for the per-image embedding pipeline."""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

from ..images.transcoder import TranscodeResult
from ..models.config import ImageHandlingSettings
from ..models.events import EmbedEvent
from ..models.images import ImageReference

# Type alias for event emitter function
EventEmitter = Callable[[EmbedEvent], None]


@dataclass
class ImageContext:
    """
    Context object passed through pipeline steps.

    Contains all state for embedding a single image, accumulated
    as it moves through the pipeline.

    Attributes:
        reference: The detected image being processed
        settings: Image handling settings for this capture
        data: Downloaded bytes
        content_type: Content-Type the bytes were served with
        transcoded: Bytes chosen for embedding and their format
        data_url: Final data URL (only set when embedding succeeded)
        should_skip: If True, remaining steps will be skipped
        skip_reason: Human-readable reason for skipping
        error: Error message if a step failed
    """

    reference: ImageReference
    settings: ImageHandlingSettings

    # Content (accumulated through pipeline)
    data: Optional[bytes] = None
    content_type: str = ""
    bytes_fetched: int = 0
    transcoded: Optional[TranscodeResult] = None
    data_url: Optional[str] = None

    # Status
    should_skip: bool = False
    skip_reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def url(self) -> str:
        return self.reference.url

    def skip(self, reason: str, error: Optional[str] = None) -> "ImageContext":
        """Stop the pipeline for this image, optionally recording an error."""
        self.should_skip = True
        self.skip_reason = reason
        if error is not None:
            self.error = error
        return self


@runtime_checkable
class EmbedStep(Protocol):
    """
    Protocol for pipeline steps.

    Each step receives an ImageContext, processes it, and returns
    the (possibly modified) context.

    Error Handling Contract:
    - For expected outcomes (failed download, over threshold): call
      ctx.skip(reason, error=...) and return
    - For unexpected failures: raise an exception
    - The pipeline will catch exceptions and set ctx.error
    """

    name: str

    async def execute(
        self,
        ctx: ImageContext,
        emit: Optional[EventEmitter] = None,
    ) -> ImageContext:
        """
        Execute this pipeline step.

        Args:
            ctx: The image context with accumulated state
            emit: Optional callback to emit events

        Returns:
            The (possibly modified) image context
        """
        ...


@dataclass
class EmbedPipeline:
    """
    Pipeline for embedding a single image through multiple steps.

    Steps are executed in order. If a step sets ctx.should_skip = True,
    remaining steps are skipped. If a step raises an exception, the
    error is captured in ctx.error and processing stops.

    Example:
        pipeline = EmbedPipeline(steps=[
            FetchImageStep(fetcher),
            SizeGateStep(),
            TranscodeStep(transcoder),
            EncodeStep(),
        ])

        ctx = await pipeline.execute(reference, settings, emit=log_event)
        if ctx.data_url:
            print("inlined")
    """

    steps: list[EmbedStep]

    async def execute(
        self,
        reference: ImageReference,
        settings: ImageHandlingSettings,
        emit: Optional[EventEmitter] = None,
    ) -> ImageContext:
        """
        Execute the pipeline for one image.

        Args:
            reference: The image to embed
            settings: Image handling settings for this capture
            emit: Optional callback for emitting events

        Returns:
            ImageContext with final state (data_url is set only on success)
        """
        ctx = ImageContext(reference=reference, settings=settings)

        for step in self.steps:
            if ctx.should_skip:
                break

            try:
                ctx = await step.execute(ctx, emit)
            except Exception as e:
                ctx.data_url = None
                ctx.skip(f"{step.name} failed", error=f"{step.name}: {e}")
                break

        return ctx

    def add_step(self, step: EmbedStep) -> "EmbedPipeline":
        """
        Add a step to the pipeline (fluent API).

        Args:
            step: The step to add

        Returns:
            Self for chaining
        """
        self.steps.append(step)
        return self
