EXERCISE_EXTRACTION_PROMPT = """Extract all exercises from the content below and return a JSON object.
The content is dollar-delimited math markup; keep math expressions, links and numbering unchanged.

Shape:
{
  "title": str, "description": str, "difficulty": "beginner|intermediate|advanced",
  "subject": str, "totalExercises": int, "exerciseChecklist": [str],
  "context": {"id": str, "content": str},
  "subExercises": [{"id": str, "question": str, "correctAnswer": str, "order": int,
                    "isSubPart": bool, "contextId": str|null, "relatedParts": [str]|null,
                    "originalNumber": str}],
  "validationResults": {"totalExercisesFound": int, "allExercisesExtracted": bool,
                        "missingExercises": [str], "validationChecks": [str]}
}"""

SOLUTION_PROMPT = """Write a step-by-step solution with hints for the exercise below and return a JSON object.
Use $...$ for inline math and $$...$$ for display math. Answer in the language of the exercise.

Shape:
{
  "steps": [{"number": int, "description": str, "explanation": str, "math": str}],
  "hints": [str],
  "finalAnswer": str
}"""
