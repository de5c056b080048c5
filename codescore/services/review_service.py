"""
DeepSeek (OpenAI-compatible chat completions) client for code and SQL review.
The model's answer is stored as an opaque Markdown blob; the only thing read
out of it is an optional 1-10 score (see extract_score).
"""
import logging
import re
from pathlib import PurePath

import httpx

from codescore.config import get_settings
from codescore.errors import ProviderError, ProviderTimeoutError, ValidationError

logger = logging.getLogger(__name__)

CODE_LANGUAGES = ("auto", "java", "javascript", "python")
EXTENSION_LANGUAGES = {
    "java": "java",
    "js": "javascript",
    "py": "python",
}

# Lazy client so tests can swap in a mock transport
_http_client: httpx.Client | None = None


def _get_client() -> httpx.Client:
    global _http_client
    if _http_client is None:
        _http_client = httpx.Client(timeout=get_settings().ai_timeout_seconds)
    return _http_client


def normalize_language(language: str | None) -> str:
    lang = (language or "auto").strip().lower()
    if lang not in CODE_LANGUAGES:
        raise ValidationError(f"Unsupported language '{language}'. Use one of: {', '.join(CODE_LANGUAGES)}")
    return lang


def detect_language(filename: str | None) -> str | None:
    """Language from file extension (.java, .js, .py), None if unknown."""
    if not filename:
        return None
    ext = PurePath(filename).suffix.lstrip(".").lower()
    return EXTENSION_LANGUAGES.get(ext)


# ---- Prompts ----


def build_code_prompt(code: str, language: str) -> str:
    return f"""As a senior code reviewer, please analyze the following {language} code and provide a comprehensive review:

{code}

Please provide:
1. **Overall Code Score**: Rate the code from 1-10 and provide a brief summary of code quality
2. **Issues Found**: List any bugs, security vulnerabilities, or problems
3. **Code Quality**: Comments on readability, maintainability, and best practices
4. **Performance**: Any performance concerns or optimizations
5. **Recommendations**: Specific suggestions for improvement
6. **Security**: Security-related observations
7. **Final Score Breakdown**: Detailed scoring breakdown with justification

Format your response in clear sections with markdown formatting."""


def build_sql_prompt(query: str, table_structures: str, data_volume: str) -> str:
    return f"""As a senior database developer and SQL expert, please analyze the following SQL query and provide a comprehensive review:

SQL Query:
{query}

Production Database Context:
{table_structures}

Current Data Volumes:
{data_volume}

Please provide a comprehensive analysis considering the actual production environment:
1. **Query Analysis**: Evaluate the SQL syntax, logic, and structure
2. **Performance Review**: Analyze performance implications based on the ACTUAL data volumes provided
3. **Index Usage**: Review if the query efficiently uses the EXISTING indexes shown in the table schemas
4. **Optimization Suggestions**: Recommend specific improvements considering the current table structures and data load
5. **Security Assessment**: Check for SQL injection risks and security best practices
6. **Production Impact**: Assess the impact on production systems based on the REAL data volumes and table sizes provided
7. **Best Practices**: Suggest improvements following SQL best practices
8. **Alternative Approaches**: Provide alternative query structures if applicable
9. **Risk Assessment**: Identify potential risks when running this query against the actual production data volumes
10. **Overall Score**: Rate the query from 1-10 with detailed justification

IMPORTANT: Base your analysis on the ACTUAL production data provided:
- Table structures with real column definitions and existing indexes
- Current data volumes and growth patterns
- Performance metrics from the live environment

Format your response in clear sections with markdown formatting."""


# ---- Provider call ----


def _error_message(response: httpx.Response) -> str:
    text = response.text or ""
    if "Insufficient Balance" in text:
        return "The AI provider account has insufficient balance. Add credits to continue using code reviews."
    if response.status_code == 401:
        return "Invalid AI provider API key. Please check the server configuration."
    if response.status_code == 429:
        return "AI provider rate limit exceeded. Please try again later."
    if response.status_code == 400:
        return "Invalid request to the AI provider. Please check your code input."
    return "AI service temporarily unavailable. Please try again later."


def complete(prompt: str) -> str:
    """Send one user message, return the assistant text. Raises ProviderError / ProviderTimeoutError."""
    settings = get_settings()
    if not settings.deepseek_api_key:
        raise ProviderError("AI provider API key is not configured.")

    try:
        response = _get_client().post(
            settings.deepseek_api_url,
            headers={"Authorization": f"Bearer {settings.deepseek_api_key}"},
            json={
                "model": settings.deepseek_model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.1,
                "max_tokens": 2000,
                "stream": False,
            },
            timeout=settings.ai_timeout_seconds,
        )
    except httpx.TimeoutException as e:
        logger.warning("AI provider timed out after %ss", settings.ai_timeout_seconds)
        raise ProviderTimeoutError() from e
    except httpx.HTTPError as e:
        logger.warning("AI provider unreachable: %s", e)
        raise ProviderError("Unable to connect to the AI provider. Please try again later.") from e

    if response.status_code != 200:
        logger.error("AI provider error %s: %s", response.status_code, response.text[:500])
        raise ProviderError(_error_message(response))

    try:
        data = response.json()
        content = data["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        logger.error("Unexpected AI provider response: %s", response.text[:500])
        raise ProviderError("Invalid response format from the AI provider.") from e
    if not isinstance(content, str) or not content.strip():
        raise ProviderError("Empty response from the AI provider.")
    return content


def generate_code_review(code: str, language: str) -> str:
    return complete(build_code_prompt(code, language))


def generate_sql_review(query: str, table_structures: str, data_volume: str) -> str:
    return complete(build_sql_prompt(query, table_structures, data_volume))


# ---- Score extraction ----

# "7/10", "8.5 / 10"; never the tail of a decimal like "0.5/10"
_SCORE_OUT_OF_TEN = re.compile(r"(?<![\d.])\b(10|[1-9])(?:\.\d+)?\s*/\s*10\b")
# "Score: 7", "Overall Score** - 8"
_SCORE_LABELLED = re.compile(r"score\W{0,10}?(?:of\s+|is\s+)?(?<![\d.])\b(10|[1-9])\b", re.IGNORECASE)


def extract_score(review_text: str | None) -> int | None:
    """
    First score in 1-10 found in the review text, or None.
    "N/10" wins over "Score: N"; decimals are truncated.
    """
    if not review_text:
        return None
    for pattern in (_SCORE_OUT_OF_TEN, _SCORE_LABELLED):
        m = pattern.search(review_text)
        if m:
            return int(m.group(1))
    return None
