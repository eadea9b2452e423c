from interview_mcq.services.rich_text import contains_code, render_blocks


def test_plain_text_is_single_block():
    blocks = render_blocks("What is a closure?")
    assert [(b.type, b.content) for b in blocks] == [("text", "What is a closure?")]


def test_code_fence_is_split_out_with_language():
    text = "What is printed?\n```python\nprint(1 + 1)\n```\nPick one."
    blocks = render_blocks(text)

    assert [b.type for b in blocks] == ["text", "code", "text"]
    assert blocks[1].language == "python"
    assert blocks[1].content == "print(1 + 1)"
    assert blocks[2].content == "Pick one."


def test_fence_without_language():
    (block,) = render_blocks("```\nx = 1\n```")
    assert block.type == "code"
    assert block.language is None


def test_empty_text_has_no_blocks():
    assert render_blocks("") == []


def test_contains_code_heuristic():
    assert contains_code("What does `console.log(x)` print?")
    assert contains_code("for (let i = 0; i < 3; i++) {}")
    assert not contains_code("Which sorting algorithm is stable?")
