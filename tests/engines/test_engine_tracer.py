"""
Tests for the engine tracer decorator.
"""

from decimal import Decimal

from stitch_engines.rate_cascade import RateInputs, compute_rates
from stitch_engines.tracer import compute_input_fingerprint, traced_engine
from stitch_engines.workload import AllocationLine, check_allocation


class TestFingerprint:
    def test_deterministic(self):
        args = {"a": Decimal("1.50"), "b": [1, 2]}
        assert compute_input_fingerprint(("a", "b"), args) == compute_input_fingerprint(
            ("a", "b"), args
        )

    def test_equal_decimals_share_fingerprint(self):
        assert compute_input_fingerprint(
            ("a",), {"a": Decimal("1.50")}
        ) == compute_input_fingerprint(("a",), {"a": Decimal("1.5")})

    def test_different_inputs_differ(self):
        assert compute_input_fingerprint(
            ("a",), {"a": 1}
        ) != compute_input_fingerprint(("a",), {"a": 2})

    def test_length(self):
        assert len(compute_input_fingerprint(("a",), {})) == 16


class TestTraceRecord:
    def test_emits_trace(self, captured_logs):
        check_allocation(100, (AllocationLine("x", 100, 10),))

        traces = [r for r in captured_logs() if r["message"] == "STITCH_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "workload"
        assert traces[0]["engine_version"] == "1.0"
        assert len(traces[0]["input_fingerprint"]) == 16
        assert traces[0]["level"] == "INFO"

    def test_positional_and_keyword_calls_match(self, captured_logs):
        inputs = RateInputs(stitch_per_repeat=Decimal("1000"))
        compute_rates(inputs)
        compute_rates(inputs=inputs)

        fps = [
            r["input_fingerprint"]
            for r in captured_logs()
            if r["message"] == "STITCH_ENGINE_TRACE"
        ]
        assert len(fps) == 2
        assert fps[0] == fps[1]

    def test_return_value_passes_through(self):
        @traced_engine("sample", "0.1", fingerprint_fields=("x",))
        def double(x):
            return x * 2

        assert double(21) == 42
        assert double.__name__ == "double"
