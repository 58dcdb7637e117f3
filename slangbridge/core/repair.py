"""
Deterministic text repair applied after generation.

Each rule is a pure function ``rule(text, source="") -> str``. The chain runs
them in a fixed order.
"""
import re
from typing import Callable, Dict, Iterable, List, Tuple

RepairRule = Callable[..., str]

# Expanded form -> whitelisted contraction
CONTRACTION_RESTORATIONS: Dict[str, str] = {
    "I am": "I'm",
    "you are": "you're",
    "he is": "he's",
    "she is": "she's",
    "it is": "it's",
    "we are": "we're",
    "they are": "they're",
    "I have": "I've",
    "you have": "you've",
    "we have": "we've",
    "they have": "they've",
    "I will": "I'll",
    "you will": "you'll",
    "he will": "he'll",
    "she will": "she'll",
    "it will": "it'll",
    "we will": "we'll",
    "they will": "they'll",
    "I would": "I'd",
    "you would": "you'd",
    "he would": "he'd",
    "she would": "she'd",
    "it would": "it'd",
    "we would": "we'd",
    "they would": "they'd",
    "is not": "isn't",
    "are not": "aren't",
    "was not": "wasn't",
    "were not": "weren't",
    "do not": "don't",
    "does not": "doesn't",
    "did not": "didn't",
    "have not": "haven't",
    "has not": "hasn't",
    "had not": "hadn't",
    "will not": "won't",
    "would not": "wouldn't",
    "should not": "shouldn't",
    "could not": "couldn't",
    "might not": "mightn't",
    "must not": "mustn't",
    "that is": "that's",
    "there is": "there's",
    "here is": "here's",
    "that will": "that'll",
    "there will": "there'll",
    "that would": "that'd",
    "there would": "there'd",
    "let us": "let's",
    "who is": "who's",
    "what is": "what's",
    "where is": "where's",
    "when is": "when's",
    "why is": "why's",
    "how is": "how's",
    "who will": "who'll",
    "what will": "what'll",
    "who would": "who'd",
    "what would": "what'd",
    "who have": "who've",
    "what have": "what've",
}

ALLOWED_CONTRACTIONS = frozenset(CONTRACTION_RESTORATIONS.values())

CAP_SOURCE_TERMS = ("cap", "capping", "no cap", "big cap", "🧢")
CAP_FIXES: Dict[str, str] = {
    "that is an exaggeration": "that is a lie",
    "that's an exaggeration": "that's a lie",
    "without exaggeration": "no lie",
    "stop exaggerating": "stop lying",
    "not exaggerating": "not lying",
    "no exaggeration": "no lie",
    "an exaggeration": "a lie",
    "exaggerating": "lying",
    "exaggeration": "lie",
}

SITUATIONSHIP_SOURCE_TERMS = ("situationship",)
SITUATIONSHIP_FIXES: Dict[str, str] = {
    "complicated relationship": "friends with benefits",
    "undefined relationship": "friends with benefits",
    "unclear relationship": "friends with benefits",
    "ambiguous relationship": "friends with benefits",
    "informal relationship": "friends with benefits",
    "casual relationship": "friends with benefits",
}


def _compile(mapping: Dict[str, str]) -> List[Tuple[re.Pattern, str]]:
    # longest phrase first so "no exaggeration" wins over "exaggeration"
    phrases = sorted(mapping, key=len, reverse=True)
    return [(re.compile(rf"\b{re.escape(p)}\b", re.IGNORECASE), mapping[p]) for p in phrases]


_CONTRACTION_PATTERNS = _compile(CONTRACTION_RESTORATIONS)
_CAP_PATTERNS = _compile(CAP_FIXES)
_SITUATIONSHIP_PATTERNS = _compile(SITUATIONSHIP_FIXES)


def _match_case(replacement: str):
    def repl(match: re.Match) -> str:
        found = match.group(0)
        if found[0].isupper() and replacement[0].islower():
            return replacement[0].upper() + replacement[1:]
        return replacement
    return repl


def _replace_all(text: str, patterns: List[Tuple[re.Pattern, str]]) -> str:
    for pattern, replacement in patterns:
        text = pattern.sub(_match_case(replacement), text)
    return text


def _source_mentions(source: str, terms: Iterable[str]) -> bool:
    lowered = (source or "").lower()
    return any(re.search(rf"(?<!\w){re.escape(t)}(?!\w)", lowered) for t in terms)


def restore_contractions(text: str, source: str = "") -> str:
    """Undo the provider's expansion of whitelisted contractions ("is not" -> "isn't")."""
    return _replace_all(text, _CONTRACTION_PATTERNS)


def fix_known_mistranslations(text: str, source: str = "") -> str:
    """Replace phrasings the provider gets wrong for specific slang terms in the source."""
    if _source_mentions(source, CAP_SOURCE_TERMS):
        text = _replace_all(text, _CAP_PATTERNS)
    if _source_mentions(source, SITUATIONSHIP_SOURCE_TERMS):
        text = _replace_all(text, _SITUATIONSHIP_PATTERNS)
    return text


DEFAULT_RULES = (restore_contractions, fix_known_mistranslations)


class TextRepairChain:
    def __init__(self, rules: Iterable[RepairRule] = DEFAULT_RULES):
        self.rules = tuple(rules)

    def apply(self, text: str, source: str = "") -> str:
        for rule in self.rules:
            text = rule(text, source)
        return text

    def without(self, *rules: RepairRule) -> "TextRepairChain":
        return TextRepairChain(r for r in self.rules if r not in rules)
