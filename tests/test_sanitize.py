from study_note_gen.pipeline.sanitize import sanitize_markup

SAMPLES = [
    "```html\n<p>Hi</p>\n```",
    '"<h2>Title</h2><p>Body</p>"',
    '<p>"Quoted"</p><p> \'single\' </p>',
    '"```html\n<p>x</p>\n```"',
    "<p>plain</p>",
    "",
]


def test_strips_code_fence() -> None:
    assert sanitize_markup("```html\n<p>Hi</p>\n```") == "<p>Hi</p>"
    assert sanitize_markup("```\n<ul><li>a</li></ul>\n```") == "<ul><li>a</li></ul>"


def test_strips_wrapping_quotes() -> None:
    assert sanitize_markup('"<h2>Title</h2><p>Body</p>"') == "<h2>Title</h2><p>Body</p>"


def test_strips_quotes_hugging_paragraphs() -> None:
    assert sanitize_markup('<p>"Quoted"</p>') == "<p>Quoted</p>"
    assert sanitize_markup("<p class=\"lead\">'Intro'</p>") == '<p class="lead">Intro</p>'


def test_handles_quotes_around_fence() -> None:
    assert sanitize_markup('"```html\n<p>x</p>\n```"') == "<p>x</p>"


def test_is_idempotent() -> None:
    for sample in SAMPLES:
        once = sanitize_markup(sample)
        assert sanitize_markup(once) == once


def test_leaves_inner_quotes_alone() -> None:
    html = '<p>He said "hello" twice</p>'
    assert sanitize_markup(html) == html
