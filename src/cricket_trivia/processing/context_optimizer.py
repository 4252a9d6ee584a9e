"""
Shrinks article snippets to their most dramatic sentences before prompting.
"""
from typing import List

from cricket_trivia.core.entities import RawContentItem
from cricket_trivia.core.scoring import score_sentence, split_sentences
from cricket_trivia.processing.batch_sizer import estimate_tokens


def optimize_text(text: str, max_sentences: int = 2, fallback_chars: int = 200) -> str:
    sentences = split_sentences(text)
    scored = [(score_sentence(s), idx, s) for idx, s in enumerate(sentences)]
    best = sorted(
        (entry for entry in scored if entry[0] > 0),
        key=lambda entry: (-entry[0], entry[1]),
    )[:max_sentences]

    if not best:
        return text[:fallback_chars].strip()

    # keep the chosen sentences in reading order
    kept: List[str] = [s for _, _, s in sorted(best, key=lambda entry: entry[1])]
    return " ".join(kept)


def optimize_context(
    item: RawContentItem,
    max_sentences: int = 2,
    fallback_chars: int = 200,
    chars_per_token: int = 4,
) -> RawContentItem:
    snippet = optimize_text(item.snippet, max_sentences=max_sentences, fallback_chars=fallback_chars)
    tokens = estimate_tokens(f"{item.title} {snippet}", chars_per_token)
    return item.with_snippet(snippet, tokens)
