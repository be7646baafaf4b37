"""
File language detection.

Maps a file name's extension to the language tag stored on project files
and passed to the AI file tools.
"""

LANGUAGE_BY_EXTENSION = {
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "cs": "csharp",
    "php": "php",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "html": "html",
    "css": "css",
    "json": "json",
    "xml": "xml",
    "md": "markdown",
    "yml": "yaml",
    "yaml": "yaml",
}

DEFAULT_LANGUAGE = "text"


def language_from_filename(file_name: str) -> str:
    """
    Guess the language tag from a file name.

    Examples:
    - "main.py" → "python"
    - "src/App.TS" → "typescript"
    - "Makefile" → "text"
    """
    if not file_name or "." not in file_name:
        return DEFAULT_LANGUAGE

    extension = file_name.rsplit(".", 1)[-1].lower()
    return LANGUAGE_BY_EXTENSION.get(extension, DEFAULT_LANGUAGE)
