"""Featured-image-first ordering of detected images."""

import dataclasses
from typing import Optional

from ..models.images import ImageReference


def prioritize_featured(
    references: list[ImageReference],
    featured_url: Optional[str],
) -> list[ImageReference]:
    """
    Move the featured image to the front of the list.

    The matching reference (exact URL) is marked featured and placed at
    index 0; every other reference keeps its relative order. When there is
    no featured URL, or it does not appear among the references, the list
    is returned unchanged.
    """
    if not featured_url:
        return references

    for index, ref in enumerate(references):
        if ref.url == featured_url:
            featured = dataclasses.replace(ref, is_featured=True)
            return [featured] + references[:index] + references[index + 1 :]

    return references
