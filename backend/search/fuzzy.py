"""
Approximate String Matching

Bitap (shift-or) matching with error tolerance. A match is scored as

    errors / pattern_length + |location - expected_location| / distance

so 0.0 is an exact match at the expected location and anything above the
threshold is rejected. Matching is case-insensitive.
"""
from dataclasses import dataclass
from typing import Dict, List

MAX_BITS = 32


@dataclass
class FuzzyMatch:
    """Result of matching a pattern against one text"""
    is_match: bool
    score: float


def compute_score(
    pattern_len: int,
    errors: int = 0,
    current_location: int = 0,
    expected_location: int = 0,
    distance: int = 100,
) -> float:
    """Score a candidate match: accuracy plus proximity penalty"""
    accuracy = errors / pattern_len
    proximity = abs(expected_location - current_location)
    if not distance:
        return 1.0 if proximity else accuracy
    return accuracy + proximity / distance


def pattern_alphabet(pattern: str) -> Dict[str, int]:
    """Bitmask of positions for each character of the pattern"""
    mask: Dict[str, int] = {}
    length = len(pattern)
    for i, char in enumerate(pattern):
        mask[char] = mask.get(char, 0) | (1 << (length - i - 1))
    return mask


def _at(bits: List[int], i: int) -> int:
    return bits[i] if 0 <= i < len(bits) else 0


def bitap_search(
    text: str,
    pattern: str,
    alphabet: Dict[str, int],
    location: int = 0,
    distance: int = 100,
    threshold: float = 0.3,
) -> FuzzyMatch:
    """
    Find the best approximate occurrence of pattern in text.

    The pattern must be at most MAX_BITS characters long.
    """
    pattern_len = len(pattern)
    text_len = len(text)
    expected_location = max(0, min(location, text_len))

    current_threshold = threshold
    best_location = expected_location

    # Exact occurrences tighten the threshold before the fuzzy pass
    index = text.find(pattern, best_location)
    while index > -1:
        score = compute_score(pattern_len, 0, index, expected_location, distance)
        current_threshold = min(score, current_threshold)
        best_location = index + pattern_len
        index = text.find(pattern, best_location)

    best_location = -1
    last_bits: List[int] = []
    final_score = 1.0
    bin_max = pattern_len + text_len
    mask = 1 << (pattern_len - 1)

    for errors in range(pattern_len):
        # Binary search for how far from the expected location we can still score
        bin_min = 0
        bin_mid = bin_max
        while bin_min < bin_mid:
            score = compute_score(
                pattern_len, errors, expected_location + bin_mid, expected_location, distance
            )
            if score <= current_threshold:
                bin_min = bin_mid
            else:
                bin_max = bin_mid
            bin_mid = (bin_max - bin_min) // 2 + bin_min

        bin_max = bin_mid

        start = max(1, expected_location - bin_mid + 1)
        finish = min(expected_location + bin_mid, text_len) + pattern_len

        bits = [0] * (finish + 2)
        bits[finish + 1] = (1 << errors) - 1

        j = finish
        while j >= start:
            current_location = j - 1
            char_match = alphabet.get(text[current_location], 0) if current_location < text_len else 0

            bits[j] = ((bits[j + 1] << 1) | 1) & char_match

            if errors:
                bits[j] |= (
                    ((_at(last_bits, j + 1) | _at(last_bits, j)) << 1)
                    | 1
                    | _at(last_bits, j + 1)
                )

            if bits[j] & mask:
                final_score = compute_score(
                    pattern_len, errors, current_location, expected_location, distance
                )
                if final_score <= current_threshold:
                    current_threshold = final_score
                    best_location = current_location
                    if best_location <= expected_location:
                        break
                    start = max(1, 2 * expected_location - best_location)
            j -= 1

        # No hope for a better match with more errors
        score = compute_score(
            pattern_len, errors + 1, expected_location, expected_location, distance
        )
        if score > current_threshold:
            break

        last_bits = bits

    return FuzzyMatch(is_match=best_location >= 0, score=max(0.001, final_score))


class FuzzyPattern:
    """
    A compiled search pattern.

    Patterns longer than MAX_BITS are split into chunks; the pattern
    matches a text when any chunk does.
    """

    def __init__(self, pattern: str, threshold: float = 0.3, distance: int = 100, location: int = 0):
        self.pattern = pattern.lower()
        self.threshold = threshold
        self.distance = distance
        self.location = location
        self.chunks = []

        length = len(self.pattern)
        if length > MAX_BITS:
            remainder = length % MAX_BITS
            end = length - remainder
            i = 0
            while i < end:
                self._add_chunk(self.pattern[i:i + MAX_BITS], i)
                i += MAX_BITS
            if remainder:
                start_index = length - MAX_BITS
                self._add_chunk(self.pattern[start_index:], start_index)
        elif length:
            self._add_chunk(self.pattern, 0)

    def _add_chunk(self, chunk: str, start_index: int):
        self.chunks.append((chunk, pattern_alphabet(chunk), start_index))

    def search_in(self, text: str) -> FuzzyMatch:
        """Match the pattern against a single text value"""
        text = text.lower()

        if self.pattern == text:
            return FuzzyMatch(is_match=True, score=0.0)

        if not self.chunks:
            return FuzzyMatch(is_match=False, score=1.0)

        total_score = 0.0
        has_matches = False
        for chunk, alphabet, start_index in self.chunks:
            result = bitap_search(
                text,
                chunk,
                alphabet,
                location=self.location + start_index,
                distance=self.distance,
                threshold=self.threshold,
            )
            if result.is_match:
                has_matches = True
            total_score += result.score

        if not has_matches:
            return FuzzyMatch(is_match=False, score=1.0)
        return FuzzyMatch(is_match=True, score=total_score / len(self.chunks))
