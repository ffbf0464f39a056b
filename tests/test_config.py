"""Tests for AnalysisConfig environment overrides."""

from backend.pipeline.config import AETNA_CODE, BCBS_CODE, AnalysisConfig


class TestAnalysisConfig:

    def test_defaults(self) -> None:
        config = AnalysisConfig()
        assert config.test_size == 0.2
        assert config.min_weeks == 5
        assert config.performance_band == 0.025
        assert config.mae_tie_tolerance == 100.0
        assert config.payer_codes.bcbs == BCBS_CODE
        assert config.payer_codes.aetna == AETNA_CODE

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("PERF_BAND_PCT", "0.05")
        monkeypatch.setenv("MIN_WEEKS", "8")
        monkeypatch.setenv("BCBS_MULTIPLIER", "1.4")
        config = AnalysisConfig.from_env()
        assert config.performance_band == 0.05
        assert config.min_weeks == 8
        assert config.bcbs_multiplier == 1.4
        assert config.test_size == 0.2

    def test_from_env_without_overrides_matches_defaults(self, monkeypatch) -> None:
        for name in ("TEST_SIZE", "MIN_WEEKS", "PERF_BAND_PCT", "PERF_SKEW_SHARE", "BCBS_MULTIPLIER",
                     "AETNA_MULTIPLIER", "OTHER_PAYER_MULTIPLIER", "PAYER_ADJUSTMENT_FLOOR",
                     "MAE_TIE_TOLERANCE"):
            monkeypatch.delenv(name, raising=False)
        assert AnalysisConfig.from_env() == AnalysisConfig()
