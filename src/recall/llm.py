from __future__ import annotations
import asyncio
from dataclasses import dataclass
import json
import logging
import re
from google import genai

from .errors import GradingUnavailable
from .grader import JudgeVerdict

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

def _strip_fences(text: str) -> str:
    cleaned = (text or "").strip()
    m = _FENCE_RE.match(cleaned)
    if m:
        return m.group(1).strip()
    return cleaned

def parse_judge_response(text: str) -> JudgeVerdict:
    cleaned = _strip_fences(text)
    if not cleaned:
        raise GradingUnavailable("empty judge response")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # models sometimes wrap the object in prose
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start < 0 or end <= start:
            raise GradingUnavailable("judge response is not JSON")
        try:
            data = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError:
            raise GradingUnavailable("judge response is not JSON")
    if not isinstance(data, dict):
        raise GradingUnavailable("judge response is not an object")

    raw_pct = data.get("percentage", data.get("score"))
    if isinstance(raw_pct, bool) or raw_pct is None:
        raise GradingUnavailable("judge response has no percentage")
    try:
        percentage = float(raw_pct)
    except (TypeError, ValueError):
        raise GradingUnavailable(f"judge percentage is not numeric: {raw_pct!r}")
    return JudgeVerdict(
        percentage=min(100.0, max(0.0, percentage)),
        rationale=str(data.get("explanation") or data.get("rationale") or "").strip(),
        suggestions=str(data.get("suggestions") or "").strip(),
    )

@dataclass
class GeminiJudge:
    api_key: str
    model: str = "gemini-2.5-flash"
    feedback_lang: str = "en"

    def _client(self):
        return genai.Client(api_key=self.api_key)

    def build_contents(self, *, prompt: str, student_answer: str, reference_content: str) -> str:
        lang = "Vietnamese" if self.feedback_lang == "vi" else "English"
        return f"""You are a teacher grading a student's answer.

Question: {prompt}

{reference_content}

Student answer:
{student_answer}

Grading rules:
- Compare the answer with the reference answer and the source content.
- Fill-in-the-blank and exact-typing answers require high precision.
- Short answers and scenarios may use different wording if the meaning is correct.
- 90-100: fully correct and complete
- 70-89: mostly correct, some details missing
- 50-69: partly correct
- 30-49: basic understanding but inaccurate
- 0-29: wrong or unrelated

Return ONLY valid JSON:
{{
  "percentage": <number 0-100>,
  "explanation": "short reason for the score in {lang}",
  "suggestions": "how to improve, in {lang}"
}}
"""

    async def __call__(
        self,
        *,
        prompt: str,
        student_answer: str,
        reference_content: str,
        timeout: float,
    ) -> JudgeVerdict:
        logger.info(
            "llm_usage: judge model=%s prompt_len=%s reference_len=%s answer_len=%s timeout=%s",
            self.model,
            len(prompt),
            len(reference_content),
            len(student_answer),
            timeout,
        )
        contents = self.build_contents(
            prompt=prompt,
            student_answer=student_answer,
            reference_content=reference_content,
        )
        client = self._client()
        try:
            resp = await asyncio.wait_for(
                client.aio.models.generate_content(model=self.model, contents=contents),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise GradingUnavailable(f"judge timed out after {timeout:g}s")
        except Exception as e:
            raise GradingUnavailable(f"judge request failed: {type(e).__name__}") from e
        return parse_judge_response(resp.text or "")
