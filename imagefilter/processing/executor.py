"""
Processing executor - applies a pipeline to one decoded image.

Filters run strictly in pipeline order. A failing filter is logged and
skipped: the image it received is passed on unchanged to the next one.
Only cancellation stops the run.
"""

import logging
from dataclasses import dataclass, field
from typing import List

import OpenImageIO as oiio

from ..core import FilterError, RequestCancelled, RunContext
from ..oiio import OiioAdapter
from .pipeline import ProcessingPipeline

logger = logging.getLogger(__name__)


@dataclass
class FilterFailure:
    """A filter that was skipped during a run."""
    key: str
    filter_id: str
    error: Exception

    def __str__(self) -> str:
        return f"{self.key}: {self.error}"


@dataclass
class ExecutionResult:
    """Final image of a run and what happened on the way."""
    image: oiio.ImageBuf
    applied: List[str] = field(default_factory=list)
    failures: List[FilterFailure] = field(default_factory=list)


class ProcessingExecutor:
    """Executes processing pipeline on ImageBuf objects."""

    def execute(
        self,
        imagebuf: oiio.ImageBuf,
        pipeline: ProcessingPipeline,
        context: RunContext,
    ) -> ExecutionResult:
        """
        Apply all filters in pipeline to image sequentially.

        Args:
            imagebuf: Decoded input image; never modified
            pipeline: Processing pipeline with filters
            context: Placeholder expansion and cancellation for this request

        Returns:
            ExecutionResult with the last successfully produced image

        Raises:
            RequestCancelled: if the request was cancelled between filters
        """
        result = ExecutionResult(image=imagebuf)

        for key, filter in pipeline.entries():
            context.check()
            try:
                output = self._apply_filter(result.image, filter, context)
            except RequestCancelled:
                raise
            except Exception as e:
                logger.warning("error applying image filter %s: %s", key, e)
                result.failures.append(FilterFailure(key, filter.filter_id, e))
                continue

            result.image = output
            result.applied.append(key)

        return result

    @staticmethod
    def _apply_filter(imagebuf, filter, context) -> oiio.ImageBuf:
        output = filter.apply(context, imagebuf)
        if output is None:
            raise FilterError(f"{filter.filter_id} produced no image")
        width, height = OiioAdapter.image_size(output)
        if width <= 0 or height <= 0:
            raise FilterError(f"{filter.filter_id} produced an empty image ({width}x{height})")
        return output
