"""Unit tests for enhancement notes composition."""

import pytest

from models.findings import ObservedObject
from services.notes_composer import (
    build_enhancement_notes,
    build_job_notes,
    has_confirmation_marker,
)
from services.vision_aggregator import VisionContext, extract_vision_context


@pytest.fixture
def vision(sample_photos):
    return extract_vision_context(sample_photos)


class TestConfirmationMarker:
    """Tests for has_confirmation_marker."""

    @pytest.mark.parametrize(
        "notes",
        [
            "Confirmed scope tier: BETTER",
            "scope confirmed with homeowner",
            "Selected issues to address: leaking faucet",
            "USER CONFIRMED replacement",
        ],
    )
    def test_markers(self, notes):
        assert has_confirmation_marker(notes)

    @pytest.mark.parametrize("notes", [None, "", "Homeowner wants a quote."])
    def test_no_marker(self, notes):
        assert not has_confirmation_marker(notes)


class TestBuildEnhancementNotes:
    """Tests for build_enhancement_notes."""

    def test_notes_then_vision_sections(self, vision):
        notes = build_enhancement_notes(vision, "  Kitchen faucet drips constantly.  ")

        sections = notes.split("\n\n")
        assert sections[0] == "Kitchen faucet drips constantly."
        assert sections[1] == "DETECTED DAMAGE: corrosion, water staining"
        assert sections[2] == "DETECTED ISSUES: leaking faucet"
        assert sections[3] == (
            "OBSERVATIONS: faucet: Drips from spout when closed; "
            "angle stop: Green corrosion on valve body"
        )
        assert sections[4] == "MATERIALS IDENTIFIED: chrome, copper, granite, pex"
        assert len(sections) == 5

    def test_confirmation_marker_suppresses_vision(self, vision):
        user_notes = "Confirmed scope tier: GOOD\nReplace kitchen faucet only.\n"

        notes = build_enhancement_notes(vision, user_notes)

        assert notes == "Confirmed scope tier: GOOD\nReplace kitchen faucet only."
        assert "DETECTED" not in notes

    def test_no_notes_no_vision(self):
        assert build_enhancement_notes(VisionContext(), None) == ""

    def test_labels_only_fallback(self):
        vision = VisionContext(labels=["countertop", "kitchen sink"])

        assert build_enhancement_notes(vision, None) == "PHOTO ANALYSIS: countertop, kitchen sink"

    def test_labels_fallback_skipped_when_notes_present(self):
        vision = VisionContext(labels=["countertop"])

        assert build_enhancement_notes(vision, "Check the sink.") == "Check the sink."

    def test_observations_capped(self):
        vision = VisionContext(
            objects=[ObservedObject(name=f"item{i}", notes="note") for i in range(12)]
        )

        notes = build_enhancement_notes(vision, None)

        assert notes.count("note") == 8
        assert "item7" in notes
        assert "item8" not in notes

    def test_materials_capped(self):
        vision = VisionContext(materials=[f"m{i:02d}" for i in range(15)])

        notes = build_enhancement_notes(vision, None)

        assert notes == "MATERIALS IDENTIFIED: " + ", ".join(f"m{i:02d}" for i in range(10))


class TestBuildJobNotes:
    """Tests for build_job_notes."""

    def test_no_selected_issues(self):
        assert build_job_notes("Faucet drips.", []) == "Faucet drips."
        assert build_job_notes(None, None) is None

    def test_appends_selected_issues(self):
        notes = build_job_notes("Faucet drips.", ["Kitchen faucet", " angle stop "])

        assert notes == "Faucet drips.\n\nSelected issues to address: Kitchen faucet; angle stop"
        assert has_confirmation_marker(notes)

    def test_selected_issues_without_notes(self):
        assert build_job_notes(None, ["Kitchen faucet", "  "]) == (
            "Selected issues to address: Kitchen faucet"
        )
