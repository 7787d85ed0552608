"""Classification of pull requests into review states."""

import logging
from typing import Optional

from .models import RawReview, ReviewState


def classify(review: RawReview, current_user_id: str) -> Optional[ReviewState]:
    """Classify a pull request for the current user.

    The checks run in a fixed order: a draft is reported as a draft even when
    the user is not one of its reviewers.

    Args:
        review: The pull request to classify
        current_user_id: Identity of the user the dashboard is shown to

    Returns:
        The review state, or None if the user is not a reviewer and the
        pull request should be skipped
    """
    if review.is_draft:
        return ReviewState.DRAFT

    reviewer = review.find_reviewer(current_user_id)
    if reviewer is None:
        logging.debug(f"Skipping PR #{review.id} - not assigned as reviewer")
        return None

    if reviewer.vote.is_final:
        return ReviewState.SIGNED_OFF

    # TODO: Detect whether the author pushed changes since we started waiting.
    if reviewer.vote.is_waiting:
        return ReviewState.WAITING

    return ReviewState.ACTIONABLE
