"""Map file names and editor language ids to language names."""

from __future__ import annotations

import re
from typing import Optional

from .models import UNKNOWN

OTHER = "Other"

_EXTENSION_LANGUAGES: dict[str, str] = {
    "js": "JavaScript",
    "mjs": "JavaScript",
    "cjs": "JavaScript",
    "jsx": "JavaScript",
    "ts": "TypeScript",
    "tsx": "TypeScript",
    "py": "Python",
    "pyw": "Python",
    "pyi": "Python",
    "java": "Java",
    "kt": "Kotlin",
    "kts": "Kotlin",
    "scala": "Scala",
    "groovy": "Groovy",
    "c": "C",
    "h": "C",
    "cpp": "C++",
    "cxx": "C++",
    "cc": "C++",
    "hpp": "C++",
    "hxx": "C++",
    "cs": "C#",
    "html": "HTML",
    "htm": "HTML",
    "css": "CSS",
    "scss": "SCSS",
    "sass": "Sass",
    "less": "Less",
    "vue": "Vue",
    "svelte": "Svelte",
    "php": "PHP",
    "phtml": "PHP",
    "rb": "Ruby",
    "go": "Go",
    "rs": "Rust",
    "swift": "Swift",
    "dart": "Dart",
    "sh": "Shell",
    "bash": "Shell",
    "zsh": "Shell",
    "fish": "Shell",
    "ps1": "PowerShell",
    "psm1": "PowerShell",
    "sql": "SQL",
    "r": "R",
    "m": "MATLAB",
    "lua": "Lua",
    "pl": "Perl",
    "pm": "Perl",
    "hs": "Haskell",
    "ex": "Elixir",
    "exs": "Elixir",
    "fs": "F#",
    "fsx": "F#",
    "clj": "Clojure",
    "cljs": "Clojure",
    "json": "JSON",
    "xml": "XML",
    "yaml": "YAML",
    "yml": "YAML",
    "toml": "TOML",
    "ini": "INI",
    "cfg": "Config",
    "conf": "Config",
    "md": "Markdown",
    "markdown": "Markdown",
    "rst": "reStructuredText",
    "tex": "LaTeX",
    "cmake": "CMake",
    "gradle": "Gradle",
    "properties": "Properties",
}

_FILENAME_LANGUAGES: dict[str, str] = {
    "dockerfile": "Dockerfile",
    "makefile": "Makefile",
    "cmakelists.txt": "CMake",
}

_LANGUAGE_IDS: dict[str, str] = {
    "javascript": "JavaScript",
    "javascriptreact": "JavaScript",
    "typescript": "TypeScript",
    "typescriptreact": "TypeScript",
    "python": "Python",
    "java": "Java",
    "kotlin": "Kotlin",
    "scala": "Scala",
    "c": "C",
    "cpp": "C++",
    "csharp": "C#",
    "html": "HTML",
    "css": "CSS",
    "scss": "SCSS",
    "sass": "Sass",
    "less": "Less",
    "vue": "Vue",
    "svelte": "Svelte",
    "php": "PHP",
    "ruby": "Ruby",
    "go": "Go",
    "rust": "Rust",
    "swift": "Swift",
    "dart": "Dart",
    "shellscript": "Shell",
    "powershell": "PowerShell",
    "sql": "SQL",
    "r": "R",
    "matlab": "MATLAB",
    "lua": "Lua",
    "perl": "Perl",
    "haskell": "Haskell",
    "elixir": "Elixir",
    "fsharp": "F#",
    "clojure": "Clojure",
    "json": "JSON",
    "jsonc": "JSON",
    "xml": "XML",
    "yaml": "YAML",
    "toml": "TOML",
    "ini": "INI",
    "markdown": "Markdown",
    "latex": "LaTeX",
    "dockerfile": "Dockerfile",
    "makefile": "Makefile",
    "cmake": "CMake",
    "plaintext": "Text",
}

_PATH_SEPARATORS = re.compile(r"[\\/]")


def detect_language_from_file(file_path: Optional[str]) -> str:
    """Return the language name for a file path.

    Empty paths map to ``"unknown"`` and unmapped files to ``"Other"``.
    """
    if not file_path:
        return UNKNOWN
    filename = _PATH_SEPARATORS.split(file_path.strip())[-1].lower()
    if not filename:
        return UNKNOWN

    if filename in _FILENAME_LANGUAGES:
        return _FILENAME_LANGUAGES[filename]

    if "." in filename:
        extension = filename.rsplit(".", 1)[1]
        if extension in _EXTENSION_LANGUAGES:
            return _EXTENSION_LANGUAGES[extension]

    if filename.startswith(".env"):
        return "Environment"
    if filename.endswith("requirements.txt"):
        return "Text"
    return OTHER


def detect_language_from_language_id(language_id: Optional[str]) -> str:
    if not language_id:
        return UNKNOWN
    return _LANGUAGE_IDS.get(language_id.strip().lower(), OTHER)
