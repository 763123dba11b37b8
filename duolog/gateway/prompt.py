from __future__ import annotations

from duolog.contracts import PRIMARY, SECONDARY, Language

SYSTEM_PROMPT = "\n".join(
    [
        "You are a bilingual assistant for live conversations.",
        "",
        "You will be given one message said by Speaker A to Speaker B.",
        "Your tasks:",
        f"1) Translate Speaker A message into BOTH {PRIMARY.name} and {SECONDARY.name}.",
        "2) Predict what Speaker B would likely reply next (short, natural). "
        f"Provide that reply in BOTH {PRIMARY.name} and {SECONDARY.name}.",
        "",
        "Return ONLY valid JSON in this exact schema:",
        "{",
        f'  "translations": {{ "{PRIMARY.code}": string, "{SECONDARY.code}": string }},',
        f'  "suggestedReply": {{ "{PRIMARY.code}": string, "{SECONDARY.code}": string }}',
        "}",
        "",
        "Rules:",
        "- suggestedReply must sound like the other person (Speaker B) responding to Speaker A.",
        "- Keep suggestedReply concise (1-2 sentences).",
        "- Do not invent personal facts; if context is missing, reply neutrally and ask a clarifying question.",
        "- No extra keys, no markdown, JSON only.",
    ]
)


def user_message(text: str, language: Language) -> str:
    return f'Speaker A ({language.name}) says: "{text}"'


def build_messages(text: str, language: Language) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_message(text, language)},
    ]
