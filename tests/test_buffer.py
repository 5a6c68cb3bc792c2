from code_workbench.core.buffer import DEFAULT_SOURCE, CodeBuffer


def test_buffer_starts_seeded_at_version_zero():
    buf = CodeBuffer()
    assert buf.version == 0
    assert buf.content == DEFAULT_SOURCE
    assert "class MyLLMModel" in buf.content
    assert buf.history == []


def test_version_strictly_increases_across_edits_and_applies():
    buf = CodeBuffer("a")
    seen = [buf.version]
    for i, text in enumerate(["b", "b", "", "print(1)", "b"]):
        if i % 2:
            seen.append(buf.apply_result(text))
        else:
            seen.append(buf.edit(text))
    assert seen == sorted(set(seen))
    assert buf.version == 5
    assert buf.content == "b"


def test_identical_text_still_bumps_version():
    buf = CodeBuffer("same")
    buf.edit("same")
    assert buf.version == 1


def test_history_records_origin():
    buf = CodeBuffer("x")
    buf.edit("y")
    buf.apply_result("z")
    assert [(c.version, c.origin) for c in buf.history] == [(1, "edit"), (2, "apply")]
