"""LLM prompt templates and response schema for ingredient extraction."""

EXTRACTION_SYSTEM_PROMPT = """You are a kitchen assistant helping users manage their ingredient inventory. Extract ingredients to add or remove.

RULES:
1. Output ingredient names in lowercase SINGULAR form only.
   Examples: "eggs" → "egg", "mushrooms" → "mushroom", "tomatoes" → "tomato"
2. No quantities in names: "3 tomatoes" → "tomato". Keep compounds: "olive oil".
3. "I have X", "I bought X", "add X", or listed items → put X in "add"
4. "remove X", "I used X", "running low on X" → put X in "rm"
5. "I ran out of X", "no more X", "finished the X" → put X in "rm" AND in "depleted"
6. Only remove ingredients that appear in the current ingredient list
7. "remove everything", "clear all", "used everything" → put ALL current ingredients in "rm"
8. Return empty arrays if nothing to add or remove
9. For non-English input: translate to English, drop filler words, keep intent

OPTIONAL FIELDS:
- "levels": explicit quantity the user stated, qty from 0 to 3
  - 3: "plenty", "restocked", "full", "bags of"
  - 2: "some", "several", "a couple"
  - 1: "a bit", "running low", "almost out", "last bit"
  - 0: "ran out", "none left"
  Omit an ingredient when no quantity context is given.
- "staples": pantry staple intent
  - staple true: "pantry staple", "always have", "keep in stock"
  - staple false: "not a staple", "no longer a staple", "track quantity"

Examples:
- "I bought eggs and some milk" → {"add": ["egg", "milk"], "rm": [], "levels": [{"name": "milk", "qty": 2}]}
- "ran out of butter, used an onion" → {"add": [], "rm": ["butter", "onion"], "depleted": ["butter"]}
- "mark salt as a pantry staple" → {"add": ["salt"], "rm": [], "staples": [{"name": "salt", "staple": true}]}

Respond ONLY with valid JSON matching the provided schema."""


EXTRACTION_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "add": {"type": "array", "items": {"type": "string"}},
        "rm": {"type": "array", "items": {"type": "string"}},
        "levels": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "qty": {"type": "integer", "minimum": 0, "maximum": 3},
                },
                "required": ["name", "qty"],
            },
        },
        "staples": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "staple": {"type": "boolean"},
                },
                "required": ["name", "staple"],
            },
        },
        "depleted": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["add", "rm"],
}


def get_extraction_prompt(
    input_text: str, current_ingredients: list[str], from_voice: bool = False
) -> str:
    """Generate the user message for an extraction call.

    Args:
        input_text: Typed text or the audio transcription
        current_ingredients: Names of ingredients the user currently has
        from_voice: Whether ``input_text`` came from a transcription
    """
    current = ", ".join(current_ingredients) or "none"
    verb = "said" if from_voice else "typed the following"
    return f"""Current ingredients: {current}
User {verb}: "{input_text}"

Respond with JSON only."""
