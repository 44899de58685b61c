"""
Tests for Frame History & Temporal Consensus
============================================
"""

import pytest

from vin_scan.config import ScanConfig
from vin_scan.models import ScanFrame, RecognitionSource
from vin_scan.pipeline.history import (
    FrameHistory,
    analyze_inconsistencies,
    calculate_stability_score,
)

from conftest import OTHER_VIN, VALID_VIN, make_frame

THIRD_VIN = "WBA3A5C50DF123456"
FOURTH_VIN = "JHMCM56557C404453"
FIFTH_VIN = "5YJSA1E26HF123456"


def _fill(history_manager, vins, now=100.0, confidence=0.9):
    history = history_manager.new_history()
    for vin in vins:
        history = history_manager.add_frame(history, make_frame(vin, confidence, now), now)
    return history


# =============================================================================
# FRAMES AND HISTORY
# =============================================================================

class TestScanFrame:
    """Tests for ScanFrame."""

    def test_rejects_invalid_vin(self):
        """Test that frames only hold structurally valid VINs."""
        with pytest.raises(ValueError):
            make_frame("1HGCM82633A0O4352")
        with pytest.raises(ValueError):
            make_frame("SHORT")

    def test_from_result(self):
        from vin_scan.models import VINScanResult
        result = VINScanResult(VALID_VIN, 0.9, RecognitionSource.BARCODE, processing_time_ms=5.0)
        frame = ScanFrame.from_result(result, 12.5)
        assert frame.timestamp == 12.5
        assert frame.frame_id.startswith("frame_12500_")
        assert frame.source == RecognitionSource.BARCODE


class TestAddFrame:
    """Tests for FrameHistory.add_frame."""

    def test_capacity_is_fifo(self):
        """Test that the oldest frame is dropped at capacity."""
        manager = FrameHistory(ScanConfig())
        history = _fill(manager, [VALID_VIN, OTHER_VIN, THIRD_VIN, FOURTH_VIN])
        assert len(history.frames) == 3
        assert [f.vin for f in history.frames] == [OTHER_VIN, THIRD_VIN, FOURTH_VIN]
        assert history.total_frames == 4
        assert history.latest.vin == FOURTH_VIN

    def test_stale_frames_evicted(self):
        """Test that frames older than the retention window are evicted."""
        manager = FrameHistory(ScanConfig())
        history = manager.add_frame(manager.new_history(), make_frame(VALID_VIN, timestamp=100.0), 100.0)
        history = manager.add_frame(history, make_frame(OTHER_VIN, timestamp=125.0), 125.0)
        assert [f.vin for f in history.frames] == [OTHER_VIN]

    def test_original_history_unchanged(self):
        """Test that add_frame returns a new history."""
        manager = FrameHistory(ScanConfig())
        empty = manager.new_history()
        manager.add_frame(empty, make_frame(), 100.0)
        assert empty.frames == ()


# =============================================================================
# CONSENSUS
# =============================================================================

class TestConsensus:
    """Tests for FrameHistory.calculate_consensus."""

    def test_majority_wins_window(self):
        """Test that the dominant VIN wins the window."""
        manager = FrameHistory(ScanConfig(max_frames=5))
        history = _fill(manager, [VALID_VIN, VALID_VIN, OTHER_VIN, VALID_VIN, VALID_VIN])
        consensus = manager.calculate_consensus(history, 100.0)

        assert consensus.vin == VALID_VIN
        assert consensus.reached
        assert consensus.frame_count == 4
        assert consensus.stability == pytest.approx(0.8)
        assert consensus.group_scores[VALID_VIN] > consensus.group_scores[OTHER_VIN]
        assert consensus.inconsistencies == []

    def test_fused_confidence(self):
        """Test recency-weighted confidence with the stability boost."""
        manager = FrameHistory(ScanConfig(max_frames=5))
        history = _fill(manager, [VALID_VIN, VALID_VIN, OTHER_VIN, VALID_VIN, VALID_VIN])
        consensus = manager.calculate_consensus(history, 100.0)

        mean = 0.9 * (0.9 ** 4 + 0.9 ** 3 + 0.9 + 1) / 4
        assert consensus.confidence == pytest.approx(mean * (15 + 2 * 1.15) / 17)

    def test_single_frame_has_no_consensus(self):
        manager = FrameHistory(ScanConfig())
        consensus = manager.calculate_consensus(_fill(manager, [VALID_VIN]), 100.0)
        assert consensus.vin is None

    def test_singletons_have_no_consensus(self):
        """Test that five different VINs agree on nothing."""
        manager = FrameHistory(ScanConfig(max_frames=5))
        history = _fill(manager, [VALID_VIN, OTHER_VIN, THIRD_VIN, FOURTH_VIN, FIFTH_VIN])
        consensus = manager.calculate_consensus(history, 100.0)
        assert consensus.vin is None
        assert len(consensus.group_scores) == 5

    def test_two_matching_frames_reach_consensus(self):
        manager = FrameHistory(ScanConfig())
        consensus = manager.calculate_consensus(_fill(manager, [VALID_VIN, VALID_VIN]), 100.0)
        assert consensus.vin == VALID_VIN
        assert consensus.stability == 1.0

    def test_confidence_capped(self):
        """Test that fused confidence stays under the ceiling."""
        manager = FrameHistory(ScanConfig())
        history = _fill(manager, [VALID_VIN, VALID_VIN, VALID_VIN], confidence=0.98)
        assert manager.calculate_consensus(history, 100.0).confidence <= 0.98

    def test_update_consensus_stores_result(self):
        manager = FrameHistory(ScanConfig())
        history, consensus = manager.update_consensus(_fill(manager, [VALID_VIN, VALID_VIN]), 101.0)
        assert history.consensus == VALID_VIN
        assert history.confidence_score == consensus.confidence
        assert history.stability_score == 1.0
        assert history.last_updated == 101.0

    def test_frame_stats(self):
        manager = FrameHistory(ScanConfig())
        stats = manager.frame_stats(_fill(manager, [VALID_VIN, OTHER_VIN]))
        assert stats["current_frames"] == 2
        assert stats["unique_vins"] == [VALID_VIN, OTHER_VIN]
        assert stats["source_breakdown"] == {"text": 2}


# =============================================================================
# DIAGNOSTICS
# =============================================================================

class TestInconsistencies:
    """Tests for analyze_inconsistencies."""

    def test_zero_one_confusion_reported(self):
        """Test that a disagreeing position is reported with its values."""
        frames = [make_frame("1HGCM82633A004352"), make_frame("1HGCM82633A104352")]
        found = analyze_inconsistencies(frames)
        assert [i.position for i in found] == [11]
        assert found[0].values == {"0": 1, "1": 1}

    def test_single_frame(self):
        assert analyze_inconsistencies([make_frame()]) == []


class TestStability:
    """Tests for calculate_stability_score."""

    def test_identical_frames(self):
        report = calculate_stability_score([make_frame(), make_frame(), make_frame()])
        assert report.overall == 1.0
        assert report.recent == 1.0
        assert report.trend == "stable"

    def test_improving_trend(self):
        """Test that recent agreement above overall reads as improving."""
        frames = [make_frame(VALID_VIN), make_frame(OTHER_VIN), make_frame(VALID_VIN), make_frame(VALID_VIN)]
        assert calculate_stability_score(frames).trend == "improving"

    def test_too_few_frames(self):
        assert calculate_stability_score([make_frame()]).overall == 0.0
