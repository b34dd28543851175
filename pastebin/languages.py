"""
Language tag sanitizing and heuristic detection.
"""
import math
import re
from typing import Dict, Iterable, List, Tuple

from pastebin.config import SUPPORTED_LANGUAGES

DEFAULT_LANGUAGE = "text"
SAMPLE_SIZE = 10000

# language -> (patterns, weight)
LANGUAGE_PATTERNS: Dict[str, Tuple[List[re.Pattern], float]] = {
    "json": ([
        re.compile(r"^\s*[\{\[]"),
        re.compile(r'"[\w-]+"\s*:\s*'),
        re.compile(r"^\s*\{.*\}\s*$", re.S),
    ], 0.9),
    "javascript": ([
        re.compile(r"function\s+\w+\s*\("),
        re.compile(r"const\s+\w+\s*="),
        re.compile(r"=>\s*\{"),
        re.compile(r"require\s*\("),
        re.compile(r"import\s+.*\s+from"),
        re.compile(r"export\s+(default\s+)?"),
        re.compile(r"console\.(log|error|warn)"),
        re.compile(r"document\."),
        re.compile(r"window\."),
    ], 0.8),
    "typescript": ([
        re.compile(r"interface\s+\w+"),
        re.compile(r"type\s+\w+\s*="),
        re.compile(r":\s*(string|number|boolean|object)"),
        re.compile(r"enum\s+\w+"),
        re.compile(r"implements\s+\w+"),
        re.compile(r"extends\s+\w+"),
    ], 0.85),
    "python": ([
        re.compile(r"def\s+\w+\s*\("),
        re.compile(r"import\s+\w+"),
        re.compile(r"from\s+\w+\s+import"),
        re.compile(r"print\s*\("),
        re.compile(r"if\s+__name__\s*==\s*['\"]__main__['\"]"),
        re.compile(r"class\s+\w+.*:"),
        re.compile(r"elif\s+"),
        re.compile(r"^\s*#.*$", re.M),
    ], 0.8),
    "java": ([
        re.compile(r"public\s+class\s+\w+"),
        re.compile(r"public\s+static\s+void\s+main"),
        re.compile(r"System\.out\.print"),
        re.compile(r"import\s+java\."),
        re.compile(r"@Override"),
        re.compile(r"throws\s+\w+"),
    ], 0.8),
    "sql": ([
        re.compile(r"SELECT\s+.*\s+FROM", re.I),
        re.compile(r"INSERT\s+INTO", re.I),
        re.compile(r"CREATE\s+TABLE", re.I),
        re.compile(r"UPDATE\s+.*\s+SET", re.I),
        re.compile(r"DELETE\s+FROM", re.I),
        re.compile(r"ALTER\s+TABLE", re.I),
        re.compile(r"DROP\s+TABLE", re.I),
    ], 0.9),
    "shell": ([
        re.compile(r"^#!"),
        re.compile(r"\$\w+"),
        re.compile(r"echo\s+"),
        re.compile(r"grep\s+"),
        re.compile(r"awk\s+"),
        re.compile(r"sed\s+"),
        re.compile(r"chmod\s+"),
        re.compile(r"sudo\s+"),
    ], 0.7),
    "css": ([
        re.compile(r"\w+\s*\{[^}]*\}"),
        re.compile(r"@media"),
        re.compile(r"\.\w+\s*\{"),
        re.compile(r"#\w+\s*\{"),
        re.compile(r"@import"),
        re.compile(r"@keyframes"),
        re.compile(r":\s*\w+\s*;"),
    ], 0.8),
    "html": ([
        re.compile(r"<html", re.I),
        re.compile(r"<head", re.I),
        re.compile(r"<body", re.I),
        re.compile(r"<div", re.I),
        re.compile(r"<script", re.I),
        re.compile(r"<style", re.I),
        re.compile(r"<!DOCTYPE", re.I),
        re.compile(r"<meta", re.I),
    ], 0.9),
    "xml": ([
        re.compile(r"<\?xml", re.I),
        re.compile(r"</\w+>"),
        re.compile(r"<\w+[^>]*/>"),
        re.compile(r"<!\[CDATA\["),
        re.compile(r"xmlns:"),
    ], 0.8),
    "markdown": ([
        re.compile(r"^#{1,6}\s+", re.M),
        re.compile(r"\*\*.*\*\*"),
        re.compile(r"__.*__"),
        re.compile(r"\[.*\]\(.*\)"),
        re.compile(r"```[\w]*\n"),
        re.compile(r"^\s*[-*+]\s+", re.M),
        re.compile(r"^\s*\d+\.\s+", re.M),
    ], 0.7),
    "yaml": ([
        re.compile(r"^---$", re.M),
        re.compile(r"^\w+:\s*$", re.M),
        re.compile(r"^\s*[-*]\s+\w+:", re.M),
        re.compile(r"^[\w-]+:\s+[|>]", re.M),
    ], 0.8),
    "dockerfile": ([
        re.compile(r"^FROM\s+", re.M),
        re.compile(r"^RUN\s+", re.M),
        re.compile(r"^COPY\s+", re.M),
        re.compile(r"^ADD\s+", re.M),
        re.compile(r"^WORKDIR\s+", re.M),
        re.compile(r"^EXPOSE\s+", re.M),
        re.compile(r"^CMD\s+", re.M),
        re.compile(r"^ENTRYPOINT\s+", re.M),
    ], 0.9),
}

FILE_EXTENSIONS: Dict[str, str] = {
    "javascript": ".js", "typescript": ".ts", "python": ".py", "java": ".java",
    "sql": ".sql", "shell": ".sh", "bash": ".sh", "css": ".css", "html": ".html",
    "xml": ".xml", "json": ".json", "yaml": ".yml", "markdown": ".md", "go": ".go",
    "rust": ".rs", "cpp": ".cpp", "c": ".c", "php": ".php", "ruby": ".rb",
    "swift": ".swift", "kotlin": ".kt", "scala": ".scala", "r": ".r",
}


def sanitize_language(language: str, supported: Iterable[str] = SUPPORTED_LANGUAGES) -> str:
    """Lower-case and check against the supported set, falling back to ``text``."""
    clean = (language or "").strip().lower()
    return clean if clean in supported else DEFAULT_LANGUAGE


def file_extension(language: str) -> str:
    return FILE_EXTENSIONS.get(language, ".txt")


def score_languages(content: str) -> Dict[str, float]:
    """
    Weighted pattern score per candidate language.

    Each matching pattern adds the language weight; the sum is normalized by
    log10 of the content length and by the fraction of patterns that matched.
    """
    sample = content[:SAMPLE_SIZE]
    length_factor = max(1.0, math.log10(len(content))) if content else 1.0
    scores: Dict[str, float] = {}
    for language, (patterns, weight) in LANGUAGE_PATTERNS.items():
        matched = sum(1 for pattern in patterns if pattern.search(sample))
        if matched:
            scores[language] = (matched * weight) / length_factor * (matched / len(patterns))
    return scores


def detect_language(content: str) -> str:
    """Highest score wins; no match or a tie for first place yields ``text``."""
    scores = score_languages(content)
    if not scores:
        return DEFAULT_LANGUAGE
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    if len(ranked) > 1 and math.isclose(ranked[0][1], ranked[1][1]):
        return DEFAULT_LANGUAGE
    return ranked[0][0]
