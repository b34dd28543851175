import pytest

from pastebin import languages
from pastebin.languages import detect_language, file_extension, sanitize_language


@pytest.mark.parametrize("content,expected", [
    ("print('hi')", "python"),
    ('{"name": "paste", "size": 3}', "json"),
    ("SELECT id, name FROM users WHERE id = 1", "sql"),
    ("<!DOCTYPE html>\n<html>\n<head></head>\n<body><div>hi</div></body>\n</html>", "html"),
    ("just some plain words here", "text"),
])
def test_detect_language(content, expected):
    assert detect_language(content) == expected


def test_python_script_beats_other_candidates():
    script = (
        "import os\n"
        "from pathlib import Path\n\n"
        "def main():\n"
        "    print(Path.cwd())\n\n"
        "if __name__ == '__main__':\n"
        "    main()\n"
    )

    assert detect_language(script) == "python"


def test_tie_for_first_place_falls_back_to_text(monkeypatch):
    monkeypatch.setattr(languages, "score_languages", lambda content: {"python": 1.0, "ruby": 1.0})

    assert detect_language("anything") == "text"


def test_empty_content_is_text():
    assert detect_language("") == "text"


@pytest.mark.parametrize("raw,expected", [
    (" Python ", "python"),
    ("GO", "go"),
    ("klingon", "text"),
    ("", "text"),
])
def test_sanitize_language(raw, expected):
    assert sanitize_language(raw) == expected


def test_file_extension_defaults_to_txt():
    assert file_extension("python") == ".py"
    assert file_extension("matlab") == ".txt"
