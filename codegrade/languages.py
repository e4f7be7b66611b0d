"""Supported languages and their identifiers on each provider family."""

from __future__ import annotations

import enum

from codegrade.errors import UnsupportedLanguageError


class Language(enum.Enum):
    PYTHON = "python"
    JAVA = "java"
    C = "c"
    CPP = "cpp"
    JAVASCRIPT = "javascript"

    @property
    def judge0_id(self) -> int:
        return JUDGE0_LANGUAGE_IDS[self]

    @property
    def piston_runtime(self) -> tuple[str, str]:
        return PISTON_RUNTIMES[self]

    @property
    def extension(self) -> str:
        return FILE_EXTENSIONS[self]


JUDGE0_LANGUAGE_IDS: dict[Language, int] = {
    Language.PYTHON: 71,  # Python 3.8.1
    Language.JAVA: 62,  # OpenJDK 13.0.1
    Language.C: 50,  # GCC 9.2.0
    Language.CPP: 54,  # GCC 9.2.0
    Language.JAVASCRIPT: 63,  # Node.js 12.14.0
}

PISTON_RUNTIMES: dict[Language, tuple[str, str]] = {
    Language.PYTHON: ("python", "3.10.0"),
    Language.JAVA: ("java", "15.0.2"),
    Language.C: ("c", "10.2.0"),
    Language.CPP: ("cpp", "10.2.0"),
    Language.JAVASCRIPT: ("javascript", "18.15.0"),
}

FILE_EXTENSIONS: dict[Language, str] = {
    Language.PYTHON: "py",
    Language.JAVA: "java",
    Language.C: "c",
    Language.CPP: "cpp",
    Language.JAVASCRIPT: "js",
}

_ALIASES = {
    "python3": Language.PYTHON,
    "py": Language.PYTHON,
    "c++": Language.CPP,
    "js": Language.JAVASCRIPT,
    "node": Language.JAVASCRIPT,
}

# Legacy single-question tests derive the language from the education board.
BOARD_LANGUAGES: dict[str, Language] = {
    "cbse": Language.PYTHON,
    "icse": Language.JAVA,
    "isc": Language.JAVA,
    "state board": Language.C,
    "state": Language.C,
    "other": Language.C,
}


def resolve_language(value: Language | str | int) -> Language:
    """Accept a Language, a language name or a Judge0 language id."""
    if isinstance(value, Language):
        return value
    if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
        wanted = int(value)
        for language, judge0_id in JUDGE0_LANGUAGE_IDS.items():
            if judge0_id == wanted:
                return language
        raise UnsupportedLanguageError(f"Unsupported language id: {value}")
    if isinstance(value, str):
        name = value.strip().lower()
        if name in _ALIASES:
            return _ALIASES[name]
        try:
            return Language(name)
        except ValueError:
            pass
    raise UnsupportedLanguageError(f"Unsupported language: {value!r}")


def language_for_board(board: str | None) -> Language:
    return BOARD_LANGUAGES.get((board or "").strip().lower(), Language.PYTHON)


def language_for_test(value, test_language: str = "", board: str = "") -> Language:
    """Explicit choice first, then the test's own language, then its board."""
    if value not in (None, ""):
        return resolve_language(value)
    if test_language:
        return resolve_language(test_language)
    return language_for_board(board)
