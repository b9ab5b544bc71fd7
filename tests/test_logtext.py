from study_note_gen.logtext import clip


def test_clip_collapses_whitespace() -> None:
    assert clip("  a\n\tb   c ", 10) == "a b c"


def test_clip_marks_truncation() -> None:
    assert clip("abcdefghij", 4) == "abcd...(truncated)"
