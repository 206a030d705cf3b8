from __future__ import annotations

RESPONSE_SCHEMA = """{
  "overallScore": <number 0-100>,
  "ATS": {
    "score": <number 0-100>,
    "tips": [
      {"type": "improve", "tip": "Adopt a single-column layout", "explanation": "Two-column formats can confuse ATS parsers, causing them to read sections out of order or miss content entirely."},
      {"type": "good", "tip": "Uses standard section headings"}
    ]
  },
  "toneAndStyle": {"score": <number 0-100>, "tips": [{"type": "good" | "improve", "tip": "<short title>", "explanation": "<2-4 sentences>"}]},
  "content": {"score": <number 0-100>, "tips": [{"type": "good" | "improve", "tip": "<short title>", "explanation": "<2-4 sentences>"}]},
  "structure": {"score": <number 0-100>, "tips": [{"type": "good" | "improve", "tip": "<short title>", "explanation": "<2-4 sentences>"}]},
  "skills": {"score": <number 0-100>, "tips": [{"type": "good" | "improve", "tip": "<short title>", "explanation": "<2-4 sentences>"}]}
}"""

SCORING_GUIDELINES = (
    "- 90-100: Excellent, ready for submission with minimal tweaks\n"
    "- 70-89: Good foundation, minor improvements will make it competitive\n"
    "- 50-69: Average, significant improvements needed before applying\n"
    "- 30-49: Below average, major revisions required across multiple areas\n"
    "- 0-29: Poor, requires complete restructuring and rewriting"
)

CRITICAL_RULES = (
    "1. Provide 3-6 tips for EACH section (ATS, toneAndStyle, content, structure, skills)\n"
    "2. Balance \"improve\" tips with \"good\" tips\n"
    "3. Be SPECIFIC: reference actual content you see in the resume\n"
    "4. Write explanations in 2-4 complete sentences covering both the problem and the fix\n"
    "5. If the resume lacks experience relevant to the job title, call it out in \"content\" with a score of 20-40\n"
    "6. Check for common ATS killers: two-column layouts, graphics/icons, tables, special characters, non-standard fonts\n"
    "7. If a job description is provided, name the requirements that are missing or not demonstrated\n"
    "8. Use professional but conversational language, coaching the candidate directly"
)


def prepare_instructions(job_title: str, job_description: str | None = None) -> str:
    title = (job_title or "").strip() or "Not specified"
    description = (job_description or "").strip() or (
        "Not provided - analyze based on industry best practices for this role"
    )
    return (
        "You are an expert ATS (Applicant Tracking System) analyst and resume reviewer with years of "
        "experience in recruitment and HR. Thoroughly analyze this resume image and provide detailed, "
        "constructive, and actionable feedback.\n\n"
        "CONTEXT:\n"
        f"- Job Title: {title}\n"
        f"- Job Description: {description}\n\n"
        "RETURN FORMAT:\n"
        "You MUST return ONLY a valid JSON object. Do not include markdown code blocks, backticks, "
        "or any text before or after the JSON.\n\n"
        f"{RESPONSE_SCHEMA}\n\n"
        f"SCORING GUIDELINES:\n{SCORING_GUIDELINES}\n\n"
        f"CRITICAL RULES:\n{CRITICAL_RULES}\n\n"
        "Return ONLY the JSON object with no additional text, markdown, or formatting."
    )
