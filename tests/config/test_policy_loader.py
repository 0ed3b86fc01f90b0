"""
Tests for lekka_config: loading, merging, range checks, the trace log and
the bridge into the kernel's LedgerPolicy.
"""

from dataclasses import replace
from decimal import Decimal

import pytest
import yaml

from lekka_config import get_active_policy
from lekka_config.bridges import build_ledger_policy, build_session_store
from lekka_config.loader import DEFAULTS_PATH, compute_checksum, load_yaml_file, merge
from lekka_kernel.domain.clock import DeterministicClock
from lekka_kernel.domain.policy import DEFAULT_HARD_ERROR_CODES, LedgerPolicy


@pytest.fixture
def override(tmp_path):
    def _write(text: str):
        path = tmp_path / "policy.yaml"
        path.write_text(text)
        return path

    return _write


class TestDefaults:
    def test_shipped_defaults_match_kernel_defaults(self):
        config = get_active_policy()

        assert config.hard_error_codes == DEFAULT_HARD_ERROR_CODES
        assert replace(build_ledger_policy(config), checksum=None) == LedgerPolicy()

    def test_checksum_is_carried_into_kernel_policy(self):
        config = get_active_policy()

        assert len(config.checksum) == 64
        assert build_ledger_policy(config).checksum == config.checksum

    def test_checksum_is_deterministic(self):
        assert get_active_policy().checksum == get_active_policy().checksum

    def test_sources(self):
        assert get_active_policy().sources == (DEFAULTS_PATH,)


class TestOverride:
    def test_override_merges_key_by_key(self, override):
        path = override("dates:\n  backdate_window_days: 7\ncash_bank:\n  block_negative: false\n")

        config = get_active_policy(path)

        assert config.dates.backdate_window_days == 7
        assert config.dates.allow_future_dates is False
        assert config.cash_bank.block_negative is False
        assert config.sources == (DEFAULTS_PATH, path)
        assert config.checksum != get_active_policy().checksum

    def test_rates_replace_wholesale(self, override):
        config = get_active_policy(override("tds:\n  rates:\n    194q: 0.1\n"))

        assert config.tds.rates == {"194Q": Decimal("0.1")}
        assert config.tds.payable_ledger == "TDS Payable"

    def test_hard_codes_are_normalized(self, override):
        config = get_active_policy(override("hard_error_codes: [' date_future ', NOT_BALANCED]\n"))

        assert config.hard_error_codes == frozenset({"DATE_FUTURE", "NOT_BALANCED"})
        assert build_ledger_policy(config).is_hard("DATE_FUTURE")

    def test_unknown_keys_are_ignored(self, override):
        config = get_active_policy(override("reporting:\n  currency: INR\n"))

        assert replace(build_ledger_policy(config), checksum=None) == LedgerPolicy()

    def test_empty_override_is_defaults(self, override):
        config = get_active_policy(override(""))

        assert config.checksum == get_active_policy().checksum

    def test_holds_and_reservations_may_outlive_previews(self, override):
        config = get_active_policy(
            override(
                "preview:\n  ttl_seconds: 600\n  funds_hold_ttl_seconds: 900\n"
                "numbering:\n  reservation_ttl_seconds: 600\n"
            )
        )

        policy = build_ledger_policy(config)
        assert (policy.preview.ttl_seconds, policy.preview.funds_hold_ttl_seconds) == (600, 900)
        assert policy.numbering.reservation_ttl_seconds == 600

    def test_session_store_uses_configured_ttl(self, override):
        clock = DeterministicClock()
        store = build_session_store(get_active_policy(override("session_state:\n  ttl_seconds: 60\n")), clock)
        store.put("tenant-a", "chat-1", {"doc_type": "journal"})

        clock.advance(61)

        assert store.get("tenant-a", "chat-1") == {}


class TestFailures:
    @pytest.mark.parametrize(
        "text",
        [
            "dates:\n  backdate_window_days: -1\n",
            "dates:\n  allow_future_dates: 'yes'\n",
            "numbering:\n  fiscal_year_start_month: 13\n",
            "numbering:\n  max_reserve_attempts: 0\n",
            "preview:\n  ttl_seconds: 0\n",
            "preview:\n  funds_hold_ttl_seconds: 60\n",
            "numbering:\n  reservation_ttl_seconds: 60\n",
            "preview:\n  ttl_seconds: 3600\n",
            "gst:\n  tolerance_minor: 1.5\n",
            "tds:\n  rates:\n    194C: 150\n",
            "tds:\n  apply_on: net\n",
            "tds:\n  payable_ledger: ''\n",
            "hard_error_codes: NOT_BALANCED\n",
            "cash_bank: true\n",
            "- just\n- a list\n",
        ],
    )
    def test_bad_values_raise(self, override, text):
        with pytest.raises(ValueError):
            get_active_policy(override(text))

    def test_malformed_yaml(self, override):
        with pytest.raises(yaml.YAMLError):
            get_active_policy(override("dates: [unclosed\n"))

    def test_missing_override_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_policy(tmp_path / "missing.yaml")


def test_policy_trace_is_logged(captured_logs):
    config = get_active_policy()

    trace = next(r for r in captured_logs() if r["message"] == "LEKKA_POLICY_TRACE")
    assert trace["logger"] == "lekka_kernel.config"
    assert trace["checksum"] == config.checksum
    assert trace["sources"] == [str(DEFAULTS_PATH)]
    assert trace["hard_error_count"] == len(DEFAULT_HARD_ERROR_CODES)


def test_merge_does_not_mutate_inputs():
    base = {"dates": {"backdate_window_days": 30, "allow_future_dates": False}}

    merged = merge(base, {"dates": {"backdate_window_days": 7}})

    assert merged["dates"] == {"backdate_window_days": 7, "allow_future_dates": False}
    assert base["dates"]["backdate_window_days"] == 30


def test_checksum_ignores_key_order():
    assert compute_checksum({"a": 1, "b": {"c": 2}}) == compute_checksum({"b": {"c": 2}, "a": 1})


def test_defaults_file_is_a_mapping():
    assert "hard_error_codes" in load_yaml_file(DEFAULTS_PATH)
