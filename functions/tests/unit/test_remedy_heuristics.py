"""Unit tests for repair vs replace heuristics."""

import pytest

from services.remedy_heuristics import (
    detect_issue_type,
    extract_condition_tags,
    recommend_remedy,
    remedy_family,
)
from services.remedy_service import Remedy


class TestDetectIssueType:
    """Tests for detect_issue_type."""

    @pytest.mark.parametrize(
        "label,description,expected",
        [
            ("leaking faucet", None, "leaking_faucet"),
            ("faucet", "drips when closed", "leaking_faucet"),
            ("leak under sink", None, "leaking_faucet"),
            ("faucet handle loose", None, "faucet_issue"),
            ("running toilet", None, None),
            ("water staining", None, None),
            ("dripping tap", None, "leaking_faucet"),
            ("bathroom taps", "handles stiff", "faucet_issue"),
            ("laptop on counter", None, None),
            ("tape on drain line", None, None),
        ],
    )
    def test_detect(self, label, description, expected):
        assert detect_issue_type(label, description) == expected

    def test_remedy_family(self):
        assert remedy_family("faucet_issue") == "leaking_faucet"
        assert remedy_family("leaking_faucet") == "leaking_faucet"
        assert remedy_family("water_heater") == "water_heater"
        assert remedy_family(None) is None


class TestExtractConditionTags:
    """Tests for extract_condition_tags."""

    def test_signals_and_age(self):
        tags = extract_condition_tags("faucet", "corroded, 20 year old fixture")

        assert "corroded" in tags
        assert "old" in tags
        assert "aged" in tags

    def test_multiword_signal_uses_underscores(self):
        assert "mineral_buildup" in extract_condition_tags("faucet", "mineral buildup on spout")

    def test_unknown_age(self):
        assert extract_condition_tags("faucet", "age unknown") == ["unknown_age"]

    def test_no_duplicates(self):
        tags = extract_condition_tags("faucet", "aged", notes="aged finish, 15 yr")

        assert tags.count("aged") == 1

    def test_notes_included(self):
        assert "cartridge" in extract_condition_tags("faucet", notes="Moen cartridge")


class TestRecommendRemedy:
    """Tests for recommend_remedy rule ordering."""

    def test_non_faucet_issue_has_no_recommendation(self):
        assert recommend_remedy("running toilet") is None

    def test_plain_drip_repair(self):
        rec = recommend_remedy("leaking faucet")

        assert rec.recommended == Remedy.REPAIR
        assert rec.confidence == pytest.approx(0.8)
        assert rec.rationale[0].startswith("Standard drip")

    def test_cartridge_mention_repair(self):
        rec = recommend_remedy("leaking faucet", "single-handle cartridge style")

        assert rec.recommended == Remedy.REPAIR
        assert rec.confidence == pytest.approx(0.85)
        assert len(rec.rationale) == 2

    def test_corrosion_replace(self):
        rec = recommend_remedy("leaking faucet", "heavy corrosion at base")

        assert rec.recommended == Remedy.REPLACE
        assert rec.confidence == pytest.approx(0.85)
        assert "corrosion" in rec.rationale[0]

    def test_mineral_buildup_replace(self):
        rec = recommend_remedy("leaking faucet", "mineral buildup on spout")

        assert rec.recommended == Remedy.REPLACE
        assert rec.confidence == pytest.approx(0.85)
        assert rec.rationale[0].startswith("Mineral buildup")

    def test_staining_replace(self):
        rec = recommend_remedy("dripping faucet", "stained finish")

        assert rec.recommended == Remedy.REPLACE
        assert rec.confidence == pytest.approx(0.75)

    def test_staining_with_cartridge_falls_through_to_repair(self):
        rec = recommend_remedy("dripping faucet", "stained finish, cartridge worn")

        assert rec.recommended == Remedy.REPAIR
        assert rec.confidence == pytest.approx(0.85)

    def test_unknown_age_replace(self):
        rec = recommend_remedy("leaking faucet", "age unknown")

        assert rec.recommended == Remedy.REPLACE
        assert rec.confidence == pytest.approx(0.65)

    def test_cracked_replace(self):
        rec = recommend_remedy("leaking faucet", "cracked spout")

        assert rec.recommended == Remedy.REPLACE
        assert rec.confidence == pytest.approx(0.9)

    def test_pitting_replace(self):
        rec = recommend_remedy("leaking faucet", "pitting on handle")

        assert rec.recommended == Remedy.REPLACE
        assert rec.confidence == pytest.approx(0.9)

    def test_corrosion_rule_precedes_cracking(self):
        rec = recommend_remedy("leaking faucet", "cracked and corroded body")

        assert rec.confidence == pytest.approx(0.85)

    def test_explicit_tags_override_text(self):
        rec = recommend_remedy("leaking faucet", tags=["RUST"])

        assert rec.recommended == Remedy.REPLACE
        assert rec.confidence == pytest.approx(0.85)
