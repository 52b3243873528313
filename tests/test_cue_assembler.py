from transcript_project.text.assembler import (
    Cue,
    DraftCue,
    ParsingState,
    finalize,
    parse_lines,
    parse_text,
    step,
)
from transcript_project.text.classifier import classify_line

END_TO_END = "\n".join([
    "101   INT. BRIDGE   101",
    "PICARD: Make it so.",
    "  (He sits.)",
    "            RIKER",
    "Aye, Captain.",
    "42 OMITTED",
    "<Back to the episode listing",
])


def test_end_to_end_mixed_conventions():
    assert parse_text(END_TO_END) == [
        Cue(text="PICARD: Make it so.", speaker="PICARD"),
        Cue(text="(He sits.)"),
        Cue(text="RIKER: Aye, Captain.", speaker="RIKER"),
    ]


def test_scene_context_prefixes_description_then_dialogue_clears_it():
    cues = parse_lines(["10  BRIDGE  10", "The bridge crew watches.", "PICARD: Engage."])
    assert cues == [
        Cue(text="[BRIDGE] The bridge crew watches."),
        Cue(text="PICARD: Engage.", speaker="PICARD"),
    ]

    cues = parse_lines(["10  BRIDGE  10", "PICARD: Engage.", "", "Silence."])
    assert cues[-1] == Cue(text="Silence.")


def test_movie_speaker_carries_over():
    assert parse_lines(["          SULU", "Aye, sir, engaging."]) == [
        Cue(text="SULU: Aye, sir, engaging.", speaker="SULU"),
    ]


def test_pending_speaker_survives_blank_line():
    assert parse_lines(["          SULU", "", "Aye."]) == [Cue(text="SULU: Aye.", speaker="SULU")]


def test_pending_speaker_redundant_prefix_is_case_insensitive():
    assert parse_lines(["          SULU", "Sulu: Course laid in."]) == [
        Cue(text="SULU: Course laid in.", speaker="SULU"),
    ]


def test_multiline_dialogue_is_joined():
    cues = parse_lines(["PICARD: Tea,", "Earl Grey,", "   hot."])
    assert cues == [Cue(text="PICARD: Tea, Earl Grey, hot.", speaker="PICARD")]


def test_blank_line_ends_cue():
    cues = parse_lines(["PICARD: Tea.", "", "The replicator hums."])
    assert cues == [Cue(text="PICARD: Tea.", speaker="PICARD"), Cue(text="The replicator hums.")]


def test_scene_context_stays_for_following_descriptions():
    cues = parse_lines(["5  ENGINEERING  5", "Warp core pulses.", "", "Crewmen hurry past."])
    assert [c.text for c in cues] == [
        "[ENGINEERING] Warp core pulses.",
        "[ENGINEERING] Crewmen hurry past.",
    ]


def test_bracketed_scene_line_consumes_context():
    cues = parse_lines(["3  BRIDGE  3", "[Bridge]", "", "Crew waits."])
    assert [c.text for c in cues] == ["[Bridge]", "Crew waits."]


def test_other_bracketed_direction_is_left_alone():
    cues = parse_lines(["3  BRIDGE  3", "[Red alert]", "", "Crew waits."])
    assert [c.text for c in cues] == ["[Red alert]", "[BRIDGE] Crew waits."]


def test_credit_lines_never_leak_into_cues():
    lines = [
        "Written by Somebody",
        "1  BRIDGE  1",
        "PICARD: Engage.",
        "Teleplay by Somebody Else",
        "RIKER: Aye.",
        "Stardate: 41153.7",
        "Crew works.",
    ]
    cues = parse_lines(lines)
    assert [c.text for c in cues] == ["PICARD: Engage.", "RIKER: Aye.", "Crew works."]
    for c in cues:
        assert "Somebody" not in c.text
        assert "41153.7" not in c.text


def test_credit_clears_scene_context_and_pending_speaker():
    assert parse_lines(["1  BRIDGE  1", "Written by X", "Crew works."]) == [Cue(text="Crew works.")]
    assert parse_lines(["          SULU", "Written by X", "Crew works."]) == [Cue(text="Crew works.")]


def test_scene_header_clears_pending_speaker():
    assert parse_lines(["          SULU", "2  HELM  2", "Lights flicker."]) == [
        Cue(text="[HELM] Lights flicker."),
    ]


def test_null_artifact_is_stripped():
    assert parse_lines(["[null]"]) == []
    assert parse_lines(["[null] Dust settles."]) == [Cue(text="Dust settles.")]


def test_doubled_colon_is_preserved():
    cues = parse_lines(["WORF:: Today is a good day."])
    assert cues == [Cue(text="WORF: : Today is a good day.", speaker="WORF")]


def test_carriage_returns_are_ignored():
    cues = parse_text("PICARD: Engage.\r\nRIKER: Aye.\r\n")
    assert [c.text for c in cues] == ["PICARD: Engage.", "RIKER: Aye."]


def test_dialogue_text_starts_with_speaker():
    for cue in parse_text(END_TO_END):
        if cue.speaker:
            assert cue.text.startswith(f"{cue.speaker}: ")
        assert cue.text.strip()


def test_parsing_is_deterministic():
    assert parse_text(END_TO_END) == parse_text(END_TO_END)


def test_step_is_a_pure_transition():
    s0 = ParsingState()
    s1, cue = step(s0, classify_line("PICARD: Engage."))
    assert cue is None
    assert s1.current == DraftCue(text="PICARD: Engage.", speaker="PICARD")
    assert s0 == ParsingState()

    s2, cue = step(s1, classify_line(""))
    assert cue == Cue(text="PICARD: Engage.", speaker="PICARD")
    assert s2 == ParsingState()


def test_movie_label_finalizes_previous_cue():
    s, _ = step(ParsingState(), classify_line("The door opens."))
    s, cue = step(s, classify_line("            WESLEY"))
    assert cue == Cue(text="The door opens.")
    assert s.pending_speaker == "WESLEY"
    assert s.current is None


def test_finalize_without_draft_emits_nothing():
    state = ParsingState(scene_context="BRIDGE")
    assert finalize(state) == (state, None)


def test_cue_dict_roundtrip_omits_missing_speaker():
    assert Cue(text="(He sits.)").to_dict() == {"text": "(He sits.)"}
    d = {"text": "RIKER: Aye.", "speaker": "RIKER"}
    assert Cue.from_dict(d).to_dict() == d


def test_existing_scene_prefix_is_not_doubled():
    assert parse_lines(["3  BRIDGE  3", "[BRIDGE] Crew waits."]) == [Cue(text="[BRIDGE] Crew waits.")]
    assert parse_lines(["3  BRIDGE  3", "[bridge] Crew waits."]) == [Cue(text="[bridge] Crew waits.")]
