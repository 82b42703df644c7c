"""Prompt construction for each operation kind."""

from flashcard_gateway.dto import AnalyzeRequest, FlashcardBatchRequest, McqBatchRequest, OperationRequest
from flashcard_gateway.entities import UpstreamPrompt

ANALYZE_TEMPERATURE, ANALYZE_MAX_TOKENS = 0.5, 2048
FLASHCARDS_TEMPERATURE, FLASHCARDS_MAX_TOKENS = 0.9, 4096
MCQS_TEMPERATURE, MCQS_MAX_TOKENS = 0.7, 4096

_PREAMBLE = "You are an educational assistant helping university students study."

_JSON_ONLY = (
    "IMPORTANT: Respond ONLY with a valid JSON object and nothing else. "
    "No markdown formatting, no backticks, no explanation text."
)


def language_instruction(language: str) -> str:
    if language == "en":
        return "Respond in English."
    if language == "fr":
        return "Répondez en français."
    return f"Respond in {language}."


def _course_block(request: FlashcardBatchRequest | McqBatchRequest) -> str:
    return (
        f"Course Subject: {request.course_data.subject}\n"
        f"Course Outline: {', '.join(request.course_data.outline)}"
    )


def _analyze(request: AnalyzeRequest, transcript: str) -> UpstreamPrompt:
    text = f"""{_PREAMBLE}
Analyze the following course transcript and:
1. Determine the main subject of the course
2. Create a concise outline with 3-5 key points

Transcript:
{transcript}

{language_instruction(request.language)}

{_JSON_ONLY}
The JSON must have this exact structure:
{{"subject": "The main subject of the course", "outline": ["Key point 1", "Key point 2", "Key point 3"]}}
"""
    return UpstreamPrompt(text=text, temperature=ANALYZE_TEMPERATURE, max_tokens=ANALYZE_MAX_TOKENS)


def _flashcards(request: FlashcardBatchRequest, transcript: str) -> UpstreamPrompt:
    avoid = ""
    if request.existing_questions:
        listed = "\n".join(f"- {q}" for q in request.existing_questions)
        avoid = f"\nDo NOT repeat or paraphrase any of these existing questions:\n{listed}\n"

    text = f"""{_PREAMBLE}
Based on the following course information and transcript, create {request.count} flashcards with questions and answers.

{_course_block(request)}

Original Transcript:
{transcript}

INSTRUCTIONS:
1. Use specific content from the transcript, not just the subject and outline
2. Vary question types: definitions, comparisons, applications, analysis, cause and effect, examples
3. Vary cognitive depth from basic recall to analysis
4. Make every question clear, focused on a key concept and different from the others
{avoid}
{language_instruction(request.language)}

{_JSON_ONLY}
The JSON must have this exact structure:
{{"flashcards": [{{"question": "Question 1", "answer": "Answer 1"}}, ... {request.count} items in total]}}
"""
    return UpstreamPrompt(text=text, temperature=FLASHCARDS_TEMPERATURE, max_tokens=FLASHCARDS_MAX_TOKENS)


def _mcqs(request: McqBatchRequest, transcript: str) -> UpstreamPrompt:
    text = f"""{_PREAMBLE}
Based on the following course information and transcript, create {request.count} multiple choice questions.

{_course_block(request)}

Original Transcript:
{transcript}

INSTRUCTIONS:
1. Each question must have exactly 4 options labeled A, B, C and D
2. Exactly one option is correct; the other three are plausible but incorrect
3. Use actual content from the transcript and vary difficulty

{language_instruction(request.language)}

{_JSON_ONLY}
The JSON must have this exact structure:
{{"questions": [{{"question": "...", "A": "...", "B": "...", "C": "...", "D": "...", "correct": "B"}}, ... {request.count} items in total]}}
"""
    return UpstreamPrompt(text=text, temperature=MCQS_TEMPERATURE, max_tokens=MCQS_MAX_TOKENS)


def build_prompt(request: OperationRequest, transcript: str) -> UpstreamPrompt:
    """Build the upstream prompt for a validated request.

    Args:
        request: The operation request
        transcript: Transcript to embed (the sample when the original is too long)

    Returns:
        Prompt text with the sampling parameters for the operation kind
    """
    if isinstance(request, AnalyzeRequest):
        return _analyze(request, transcript)
    if isinstance(request, FlashcardBatchRequest):
        return _flashcards(request, transcript)
    if isinstance(request, McqBatchRequest):
        return _mcqs(request, transcript)
    raise TypeError(f"Unsupported request type: {type(request).__name__}")
