import re
from typing import List, Optional

from .repair import ALLOWED_CONTRACTIONS
from .slang_terms import TermCurrencyRegistry
from .utils.llm import LLMProvider
from ..config import MAX_TEXT_LENGTH

STANDARD_STYLE = "standard"
TREND_SLANG_STYLE = "trend-slang"
FORMAL_STYLE = "formal"

# Style id -> display name used in prompts
STYLE_NAMES = {
    "standard": "Standard English",
    "trend-slang": "Gen Z English",
    "casual-peer-style": "Millennial English",
    "formal": "Formal English",
    "british": "British English",
    "spanish": "Spanish",
    "french": "French",
}

CANDIDATE_DELIMITER = "|||"
SLANG_CANDIDATE_COUNT = 3

CONTEXT_INSTRUCTIONS = {
    "casual": "Use a casual, friendly tone appropriate for informal conversations.",
    "formal": "Use formal, professional language appropriate for business or academic contexts.",
    "technical": "Use precise, technical language appropriate for professional or academic contexts.",
    "creative": "Use creative, expressive language that captures the artistic or literary nature of the text.",
}

MEANING_RULES = """MEANING PRESERVATION RULES (CRITICAL - HIGHEST PRIORITY):
- Keep the same core message, actions, and intent as the original
- Don't drift into different topics or add unrelated content
- Maintain specific details (who, what, when, where, why)
- Only change the style/language, never the substance"""

TRANSLATION_ONLY_RULES = """TRANSLATION RULES:
- You are a translation engine. Output ONLY the translated text.
- Do NOT respond to questions or greetings conversationally
- Do NOT add prefixes like "Translation:" or explanations"""

# Single-candidate targets with a dedicated template
STYLE_TEMPLATES = {
    "formal": f"""Transform the given text into formal, professional English while preserving the EXACT original meaning.

{MEANING_RULES}

FORMAL STYLE RULES:
- Use precise, professional language
- Avoid contractions (use "do not" instead of "don't")
- Use complete sentences with proper grammar
- Remove casual expressions

{TRANSLATION_ONLY_RULES}""",

    "british": f"""Transform the given text into British English while preserving the EXACT original meaning.

{MEANING_RULES}

USE BRITISH VOCABULARY & EXPRESSIONS:
- "Brilliant" instead of "great", "Cheers" for "thanks", "Mate" for "friend"
- "Gutted" for "disappointed", "Chuffed" for "pleased"
- British spellings: colour, favour, realise, etc.
- Sound naturally British, not forced

{TRANSLATION_ONLY_RULES}""",

    "casual-peer-style": f"""Transform the given text into relaxed millennial English, the way friends in their thirties text each other.

{MEANING_RULES}

STYLE RULES:
- Casual but clear; light slang is fine ("adulting", "I can't even", "on point")
- Avoid current Gen Z slang and abbreviations
- Keep it natural and short

{TRANSLATION_ONLY_RULES}""",
}

NORMALIZE_TEMPLATE = """Normalize this input to precise, natural American English.
The input may contain slang, abbreviations, contractions, and misspellings.

CONTRACTION WHITELIST - PRESERVE THESE EXACTLY:
{contractions}

"CAP" TRANSLATION RULES:
- "cap" / "that's cap" -> "lie" / "that's a lie"
- "no cap" -> "no lie"; "capping" -> "lying"; "big cap" -> "huge lie"
- Never use "exaggeration" for cap terms

"SITUATIONSHIP" TRANSLATION RULES:
- "situationship" -> "friends with benefits"

TRANSFORMATION RULES:
1. Preserve whitelisted contractions; expand all other contractions
2. Expand abbreviations ("fr" -> "for real", "idk" -> "I don't know")
3. Translate slang terms into plain wording
4. Fix spelling and grammar mistakes
5. Translate from other languages into American English if needed

Output only the normalized text, no explanations."""

SLANG_TEMPLATE = """Transform the given text into current Gen Z slang while preserving the EXACT original meaning.

{meaning_rules}

STYLE RULES:
- Greetings become natural texting openers ("yo", "wsp", "what's good")
- Use short forms where natural: "u", "rn", "fr", "tmrw", "gts"
- No emojis, no conversational responses, never answer questions

Current trending terms to prefer: {preferred}.
AVOID outdated: {avoided}.

Provide {count} different translation options separated by '{delimiter}'.
Each option must preserve the exact original meaning."""

GENERAL_TEMPLATE = """Translate the following text from {source} to {target} while preserving the EXACT original meaning.

{meaning_rules}

IMPORTANT RULES:
- Provide ONLY the direct translation, no additional text
- Make the translation natural and fluent in the target language
- Maintain the original tone"""

EXPLANATION_TEMPLATE = """You are a translation explanation engine. Explain what the translated text means without being conversational.

RULES:
- Start with "Basically they're saying..."
- Give a short paraphrase of the whole sentence in everyday English, without slang
- Define any slang or shortened terms, like: "fire" means really good
- Max 3 lines total"""


class StyleTranslator:
    """Builds style-specific prompts and parses provider output."""

    def __init__(self, provider: LLMProvider, registry: TermCurrencyRegistry = None):
        self.provider = provider
        self.registry = registry

    def sanitize_input(self, text: str) -> str:
        """
        Sanitize input text to mitigate prompt injection attacks.
        - Removes potential instruction-like patterns
        - Truncates to maximum length
        """
        if not text:
            return ""

        text = text[:MAX_TEXT_LENGTH]

        injection_patterns = [
            (r'(?i)ignore\s+(all\s+)?(previous|above)\s+instructions?', '[filtered]'),
            (r'(?i)disregard\s+(all\s+)?(previous|above)', '[filtered]'),
            (r'(?i)new\s+instructions?:', '[filtered]'),
            (r'(?i)system\s*:', '[filtered]'),
            (r'(?i)assistant\s*:', '[filtered]'),
        ]
        for pattern, replacement in injection_patterns:
            text = re.sub(pattern, replacement, text)

        return text.strip()

    def to_standard(self, text: str) -> str:
        instruction = NORMALIZE_TEMPLATE.format(contractions=", ".join(sorted(ALLOWED_CONTRACTIONS)))
        return self.provider.complete(instruction, self.sanitize_input(text), temperature=0.3, max_tokens=500)

    @staticmethod
    def prepare_slang_input(text: str) -> str:
        """Lower-case, drop punctuation, and fold "have to"/"need to" into "gotta"."""
        prepared = re.sub(r"[.,!?;:]", "", text.strip().lower())
        prepared = re.sub(r"\bhave to\b", "gotta", prepared)
        return re.sub(r"\bneed to\b", "gotta", prepared)

    def _slang_instruction(self) -> str:
        if self.registry is not None:
            preferred = ", ".join(f"'{t.term}'" for t in self.registry.current_terms()[:10])
            avoided = ", ".join(f"'{s}'" for s in self.registry.deprecated_spellings())
        else:
            preferred = avoided = "none"
        return SLANG_TEMPLATE.format(
            meaning_rules=MEANING_RULES,
            preferred=preferred,
            avoided=avoided,
            count=SLANG_CANDIDATE_COUNT,
            delimiter=CANDIDATE_DELIMITER,
        )

    def slang_candidates(self, text: str) -> List[str]:
        """Ask for several trend-slang renderings; returns them in provider order."""
        raw = self.provider.complete(
            self._slang_instruction(),
            self.sanitize_input(self.prepare_slang_input(text)),
            temperature=0.8,
            max_tokens=300,
        )
        return parse_candidates(raw)

    def to_style(self, text: str, target_style: str, context: Optional[str] = None) -> str:
        instruction = STYLE_TEMPLATES.get(target_style)
        if instruction is None:
            instruction = GENERAL_TEMPLATE.format(
                source=STYLE_NAMES[STANDARD_STYLE],
                target=STYLE_NAMES.get(target_style, target_style),
                meaning_rules=MEANING_RULES,
            )
        if context and context in CONTEXT_INSTRUCTIONS:
            instruction += f"\n- {CONTEXT_INSTRUCTIONS[context]}"

        temperature = 0.7 if target_style == "british" else 0.3
        return self.provider.complete(instruction, self.sanitize_input(text), temperature=temperature, max_tokens=500)

    def explain(self, source_text: str, output_text: str, from_style: str, to_style: str) -> str:
        prompt = (
            f'Input: "{self.sanitize_input(source_text)}"\n'
            f'Output: "{self.sanitize_input(output_text)}"\n'
            f"Source: {STYLE_NAMES.get(from_style, from_style)}\n"
            f"Target: {STYLE_NAMES.get(to_style, to_style)}"
        )
        return self.provider.complete(EXPLANATION_TEMPLATE, prompt, temperature=0.3, max_tokens=150)


def parse_candidates(raw: str) -> List[str]:
    """Split a delimited candidate list, dropping blanks and list numbering."""
    candidates = []
    for part in (raw or "").split(CANDIDATE_DELIMITER):
        cleaned = re.sub(r"^\s*(?:\d+[.)]|[-*])\s*", "", part).strip().strip('"')
        if cleaned:
            candidates.append(cleaned)
    return candidates
