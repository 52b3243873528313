import pytest

from transcript_project.text.classifier import LineKind, classify_line


@pytest.mark.parametrize(
    "line",
    [
        "Written by Gene Roddenberry",
        "Teleplay by Someone Else",
        "[null] Directed by Rob Bowman",
        "Stardate: 41153.7",
        "Original Airdate: 28 Sep, 1987",
        "Captain's log, supplemental.",
        "COPYRIGHT 1987 PARAMOUNT",
        "Credits and transcriptions by a fan",
    ],
)
def test_credit_lines(line):
    assert classify_line(line).kind is LineKind.CREDIT


def test_blank_and_carriage_return():
    assert classify_line("").kind is LineKind.BLANK
    assert classify_line("   \r").kind is LineKind.BLANK


def test_footer():
    assert classify_line("<Back to the episode listing").kind is LineKind.FOOTER


@pytest.mark.parametrize("line", ["42 OMITTED", "42 OMITTED 42", "  17  "])
def test_omission_lines(line):
    assert classify_line(line).kind is LineKind.OMISSION


def test_scene_header_captures_normalized_text():
    c = classify_line("  1   A BLACK    VOID          1")
    assert c.kind is LineKind.SCENE_HEADER
    assert c.scene == "A BLACK VOID"

    c = classify_line("101   INT. BRIDGE   101")
    assert c.scene == "INT. BRIDGE"


def test_movie_speaker_needs_ten_spaces():
    c = classify_line("            RIKER")
    assert c.kind is LineKind.MOVIE_SPEAKER
    assert c.speaker == "RIKER"

    # nine spaces is not a label
    assert classify_line("         RIKER").kind is LineKind.CONTINUATION


@pytest.mark.parametrize(
    "line,speaker",
    [
        ("          PICARD (V.O.)", "PICARD (V.O.)"),
        ("          PICARD (CONT'D)", "PICARD (CONT'D)"),
        ("          SULU'S VOICE", "SULU'S VOICE"),
    ],
)
def test_movie_speaker_annotations(line, speaker):
    c = classify_line(line)
    assert c.kind is LineKind.MOVIE_SPEAKER
    assert c.speaker == speaker


@pytest.mark.parametrize(
    "line,speaker",
    [
        ("PICARD: Make it so.", "PICARD"),
        ("PICARD (V.O.): Computer, lights.", "PICARD (V.O.)"),
        ("DATA [OC]: Sir.", "DATA [OC]"),
        ("(quietly) RIKER: Yes.", "RIKER"),
        ("DR. CRUSHER: Hold still.", "DR. CRUSHER"),
        ("          PICARD: Indented but inline.", "PICARD"),
    ],
)
def test_dialogue_cue_start_captures_speaker(line, speaker):
    c = classify_line(line)
    assert c.kind is LineKind.CUE_START
    assert c.speaker == speaker
    assert c.text == line.strip()


@pytest.mark.parametrize(
    "line",
    ["(He sits.)", "  (He sits.) and waits", "[Bridge]", "Stardate: unknown", "Captain's log: we arrive."],
)
def test_speakerless_cue_starts(line):
    c = classify_line(line)
    assert c.kind is LineKind.CUE_START
    assert c.speaker is None


@pytest.mark.parametrize("line", ["Aye, Captain.", "The bridge crew watches.", "Note: lowercase label"])
def test_continuation_fallback(line):
    assert classify_line(line).kind is LineKind.CONTINUATION


def test_credit_wins_over_cue_start():
    # "Original Airdate:" is also a log marker, but credits take precedence
    assert classify_line("Original Airdate: 1987").kind is LineKind.CREDIT
