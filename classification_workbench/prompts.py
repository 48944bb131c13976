"""
Prompt templates for the classification workbench.
Contains the LLM prompts used by the few-shot classifier.
"""

from typing import Dict, List


class ClassificationPrompts:
    """Prompts for few-shot narrative classification."""

    @staticmethod
    def system_prompt() -> str:
        """System prompt for the few-shot classifier agent."""
        return """You are an expert analyst who classifies short incident narratives into a fixed set of categories.

You will receive the allowed categories, labeled examples for each category, and one narrative to classify.
Choose exactly one category from the allowed list. Never invent a new category.

Respond with a single JSON object and nothing else:
{"label": "<one of the allowed categories>", "confidence": <number between 0.0 and 1.0>}"""

    @staticmethod
    def classification_prompt(
        text: str,
        labels: List[str],
        examples: Dict[str, List[str]]
    ) -> str:
        """Build the user prompt for one narrative."""
        example_lines = []
        for label in labels:
            for example in examples.get(label, []):
                example_lines.append(f'- "{example}" -> {label}')
        examples_block = "\n".join(example_lines) if example_lines else "(no examples)"

        return f"""ALLOWED CATEGORIES:
{", ".join(labels)}

LABELED EXAMPLES:
{examples_block}

NARRATIVE TO CLASSIFY:
"{text}"

Return the JSON object now."""
