"""
Language name resolution
Maps submitted language names to Judge0 language ids and to the names the
local execution service understands.
"""
from typing import Optional

from contest_judge.core.exceptions import UnsupportedLanguageError

# Judge0 CE language ids
JUDGE0_LANGUAGE_IDS = {
    "c": 50,             # C (GCC 9.2.0)
    "cpp": 54,           # C++ (GCC 9.2.0)
    "java": 62,          # Java (OpenJDK 13.0.1)
    "python": 71,        # Python (3.8.1)
    "python2": 70,       # Python (2.7.17)
    "python3": 71,
    "javascript": 63,    # JavaScript (Node.js 12.14.0)
    "nodejs": 63,
    "csharp": 51,        # C# (Mono 6.6.0.161)
    "php": 68,
    "ruby": 72,
    "go": 60,
    "rust": 73,
    "kotlin": 78,
    "swift": 83,
    "typescript": 74,
    "bash": 46,
    "r": 80,
    "scala": 81,
    "sql": 82,
    "perl": 85,
    "objectivec": 79,
    "clojure": 86,
    "pascal": 67,
    "fortran": 59,
    "haskell": 61,
    "lua": 64,
    "assembly": 45,
    "elixir": 57,
    "erlang": 58,
    "d": 56,
    "lisp": 55,
    "prolog": 69,
}

ALIASES = {
    "c++": "cpp",
    "py": "python",
    "py3": "python3",
    "js": "javascript",
    "node": "nodejs",
    "c#": "csharp",
    "ts": "typescript",
    "golang": "go",
}

# Languages the local execution service can build and run
LOCAL_LANGUAGES = {
    "python": "python",
    "python3": "python",
    "javascript": "javascript",
    "nodejs": "javascript",
    "cpp": "cpp",
    "java": "java",
}


def normalize_language(language: Optional[str]) -> str:
    """Lower-case, trim and resolve aliases"""
    name = (language or "").strip().lower()
    return ALIASES.get(name, name)


def get_judge0_language_id(language: str) -> int:
    """
    Judge0 language id for a language name

    Raises:
        UnsupportedLanguageError: unknown language
    """
    name = normalize_language(language)
    language_id = JUDGE0_LANGUAGE_IDS.get(name)
    if language_id is None:
        raise UnsupportedLanguageError(f"Unsupported programming language: {language}")
    return language_id


def get_local_language(language: str) -> str:
    """
    Local execution service language name

    Raises:
        UnsupportedLanguageError: the local service cannot run this language
    """
    name = normalize_language(language)
    local_name = LOCAL_LANGUAGES.get(name)
    if local_name is None:
        raise UnsupportedLanguageError(
            f"Unsupported programming language: {language}. "
            f"Available: {sorted(set(LOCAL_LANGUAGES.values()))}"
        )
    return local_name
