"""Prompt templates for AI question generation."""
from __future__ import annotations

from quizsmith.models import GenerationRequest

SYSTEM_PROMPT = (
    "You are an expert educational assessment creator. Generate high-quality "
    "questions in valid JSON format only. Do not include any markdown formatting "
    "or code blocks."
)

GENERATION_PROMPT = """\
Analyze the following text and generate a structured questionnaire with exactly these counts:
{count_lines}

Total Questions Required: {total}
Difficulty Level: {difficulty}

Text to analyze:
\"\"\"
{text}
\"\"\"

Generate questions in this EXACT JSON format (no markdown, no code blocks):
{json_shape}

CRITICAL Requirements:
- Generate EXACTLY {total} question(s) total with the distribution shown above
- All questions must be directly based on the provided text content
- Multiple choice: use SPECIFIC, RELEVANT options taken from the text, never placeholders like "Option A"
- Multiple choice: between 2 and 6 options, all different from each other
- Multiple choice: correctAnswer is the 0-based index of the correct option
- True/False: answer must be a JSON boolean (true or false)
- Fill-in-the-blank: the sentence contains exactly one "{blank}" blank; answer is the missing word or phrase
- Ensure questions match the {difficulty} difficulty level
- Include all three arrays (multipleChoice, trueFalse, fillInTheBlank) even if some are empty
- Return ONLY valid JSON with the exact structure shown above, no additional text
"""

KIND_LINES = {
    "multiple-choice": "- {n} Multiple Choice Questions (4 options each with specific, relevant answers from the text)",
    "true-false": "- {n} True/False Questions",
    "fill-in-blank": "- {n} Fill-in-the-Blank Questions",
}

KIND_EXAMPLES = {
    "multiple-choice": """\
    {{
      "question": "Question text here?",
      "options": ["Specific answer from text", "Another specific answer", "Third specific answer", "Fourth specific answer"],
      "correctAnswer": 0
    }}""",
    "true-false": """\
    {{
      "statement": "Statement here",
      "answer": true
    }}""",
    "fill-in-blank": """\
    {{
      "sentence": "Sentence with {blank} blank",
      "answer": "correct word"
    }}""",
}

PAYLOAD_ORDER = (
    ("multipleChoice", "multiple-choice"),
    ("trueFalse", "true-false"),
    ("fillInTheBlank", "fill-in-blank"),
)


def format_count_lines(allocation: dict[str, int]) -> str:
    return "\n".join(KIND_LINES[kind].format(n=n) for kind, n in allocation.items() if n > 0)


def format_json_shape(allocation: dict[str, int], blank: str) -> str:
    parts = []
    for key, kind in PAYLOAD_ORDER:
        if allocation.get(kind, 0) > 0:
            example = KIND_EXAMPLES[kind].format(blank=blank)
            parts.append(f'  "{key}": [\n{example}\n  ]')
        else:
            parts.append(f'  "{key}": []')
    return "{\n" + ",\n".join(parts) + "\n}"


def build_generation_prompt(request: GenerationRequest, char_limit: int = 3000, blank: str = "______") -> str:
    allocation = request.allocation()
    return GENERATION_PROMPT.format(
        count_lines=format_count_lines(allocation),
        total=request.count,
        difficulty=request.difficulty,
        text=request.text[:char_limit],
        json_shape=format_json_shape(allocation, blank),
        blank=blank,
    )
