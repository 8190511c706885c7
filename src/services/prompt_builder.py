from src.utils.config import settings


def build_generation_prompt(document_text: str, card_count: int, simple_style: bool = False) -> str:
    complexity_level = "simple, easy-to-understand" if simple_style else "detailed and comprehensive"
    # Limite de entrada do serviço de completion
    excerpt = document_text[:settings.MAX_DOCUMENT_CHARS]

    return f"""You are an expert educational content creator. Analyze the following document and create exactly {card_count} high-quality flashcards.

DOCUMENT CONTENT:
{excerpt}

INSTRUCTIONS:
- Create EXACTLY {card_count} flashcards
- Each flashcard must have a "question" and an "answer"
- Questions should be clear, specific, and test understanding
- Answers should be {complexity_level}
- Cover the most important concepts from the document
- Vary the question types (definitions, explanations, applications, comparisons)
- Return ONLY a valid JSON array, no prose and no markdown code blocks

REQUIRED FORMAT:
[
  {{"question": "What is...", "answer": "..."}},
  {{"question": "Explain...", "answer": "..."}}
]

Generate the flashcards now:"""


def build_judge_prompt(question: str, correct_answer: str, student_answer: str) -> str:
    return f"""You are a fair teacher grading a flashcard answer.

QUESTION: {question}
CORRECT ANSWER: {correct_answer}
STUDENT ANSWER: {student_answer}

Decide whether the student's answer is correct.
- Accept paraphrases, synonyms and minor spelling mistakes.
- Mark it incorrect if it contains a factual error or leaves out a key part of the correct answer.
- Give one or two sentences of feedback explaining the decision.

Return ONLY a JSON object, no prose and no markdown code blocks:
{{"correct": true or false, "feedback": "..."}}"""
