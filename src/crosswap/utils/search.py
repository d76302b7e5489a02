"""Fuzzy text similarity for token search ranking."""


def calculate_similarity(query: str, text: str) -> float:
    """Score how well text matches query, between 0.0 and 1.0.

    - exact match: 1.0
    - substring (including prefix) match: 0.8
    - otherwise a blend of character overlap and partial word matches
    """
    query = query.lower().strip()
    text = text.lower().strip()

    if text == query:
        return 1.0
    if not query or not text:
        return 0.0
    if query in text:
        return 0.8

    text_chars = set(text)
    matches = sum(1 for char in query if char in text_chars)
    overlap_score = matches / max(len(query), len(text))

    query_words = query.split()
    text_words = text.split()
    word_matches = 0
    for q_word in query_words:
        if len(q_word) <= 2:
            continue
        for t_word in text_words:
            if q_word in t_word or t_word in q_word:
                word_matches += 1

    word_score = word_matches / len(query_words) if query_words else 0.0

    return max(overlap_score * 0.6 + word_score * 0.4, overlap_score)


def is_exact_match(query: str, *fields: str) -> bool:
    """Case-insensitive equality against any of the given fields."""
    query = query.lower().strip()
    return any(field and field.lower() == query for field in fields)
