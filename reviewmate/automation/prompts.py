"""Prompt text sent to the reply generator."""

from __future__ import annotations

from .models import AutomationSetting, Review

NO_COMMENT_PLACEHOLDER = "(no written comment, rating only)"

DEFAULT_SYSTEM_PROMPT = (
    "You write replies to Google reviews on behalf of a business owner. "
    "Return only the reply text."
)


def _comment_text(review: Review) -> str:
    comment = (review.comment or "").strip()
    return comment or NO_COMMENT_PLACEHOLDER


def build_prompt(review: Review, setting: AutomationSetting) -> str:
    """Render the reply request for one review under one location's settings."""

    tone = (setting.tone or "").strip() or "Professional"
    reviewer = (review.reviewer_name or "").strip() or "A customer"
    rating = review.star_rating if review.star_rating else "unknown"

    lines = [
        f"Write a reply from the business to the following customer review of {setting.display_name}.",
        "",
        f"Reviewer: {reviewer}",
        f"Star rating: {rating} out of 5",
        f'Review: "{_comment_text(review)}"',
        "",
        f"Tone: {tone}",
    ]

    keywords = [keyword for keyword in setting.keywords if keyword]
    if keywords:
        lines.append(
            "Work these keywords into the reply naturally: " + ", ".join(keywords)
        )

    lines.extend(
        [
            "",
            "Rules:",
            "- Reply in the same language as the review.",
            "- Stay professional and courteous, including for negative reviews.",
            "- Do not use placeholders such as [Name] or [Business].",
            "- Do not mention that the reply was written automatically or by AI.",
            "- Return only the reply text.",
        ]
    )
    return "\n".join(lines)


__all__ = ["DEFAULT_SYSTEM_PROMPT", "NO_COMMENT_PLACEHOLDER", "build_prompt"]
