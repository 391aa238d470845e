from hmi_agent.services.segmenter import INTRO_HEADING, document_lines, is_heading, segment


def _non_blank_lines(text: str):
    return [line.strip() for line in text.splitlines() if line.strip()]


def test_lines_are_preserved_in_order(fds_text: str) -> None:
    assert document_lines(segment(fds_text)) == _non_blank_lines(fds_text)


def test_lines_before_first_heading_go_to_intro_section() -> None:
    text = "free text first\nanother note\n\n1. Overview\nbody line"
    sections = segment(text)
    assert sections[0].heading == INTRO_HEADING
    assert sections[0].synthetic
    assert sections[0].content == ["free text first", "another note"]
    assert sections[1].heading == "1. Overview"
    assert sections[1].content == ["body line"]
    assert document_lines(sections) == _non_blank_lines(text)


def test_empty_intro_is_dropped_when_text_starts_with_heading() -> None:
    sections = segment("HOME SCREEN\nshows status\n")
    assert [s.heading for s in sections] == ["HOME SCREEN"]


def test_empty_text_yields_single_intro_section() -> None:
    sections = segment("")
    assert len(sections) == 1
    assert sections[0].heading == INTRO_HEADING
    assert sections[0].content == []


def test_segmentation_is_idempotent(fds_text: str) -> None:
    first = segment(fds_text)
    assert segment(fds_text) == first
    assert segment("\n".join(document_lines(first))) == first


def test_heading_detection() -> None:
    assert is_heading("1. Introduction")
    assert is_heading("2.1 Home Screen")
    assert is_heading("ALARM SUMMARY")
    assert is_heading("Manual Mode")
    assert not is_heading("the pump runs at low speed.")
