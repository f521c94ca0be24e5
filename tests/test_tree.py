import unittest

from apexlog_analyzer.analyzer import iter_frames, parse_log
from apexlog_analyzer.config import ParseLimits
from apexlog_analyzer.diagnostics import Diagnostics
from apexlog_analyzer.errors import ResourceLimitError
from apexlog_analyzer.records import BlockGroup, Record, Severity
from apexlog_analyzer.stream import assemble_records
from apexlog_analyzer.tree import CallTreeBuilder, compute_durations


def _log(*lines: str) -> str:
    return "\n".join(lines) + "\n"


NESTED_LOG = _log(
    "59.0 APEX_CODE,FINEST;APEX_PROFILING,INFO",
    "(0)|EXECUTION_STARTED",
    "(100)|CODE_UNIT_STARTED|[EXTERNAL]|01p|Foo.bar()",
    "(150)|USER_DEBUG|[3]|DEBUG|before",
    "(200)|METHOD_ENTRY|[1]|a|A.a()",
    "(500)|METHOD_EXIT|[1]",
    "(550)|STATEMENT_EXECUTE|[2]",
    "(600)|SOQL_EXECUTE_BEGIN|[2]|Aggregations:0|SELECT Id FROM Account",
    "(900)|SOQL_EXECUTE_END|[2]|Rows:3",
    "(1000)|CODE_UNIT_FINISHED|Foo.bar()",
    "(1100)|EXECUTION_FINISHED"
)


class TestCallTree(unittest.TestCase):
    def assert_timing_identities(self, root: Record):
        for frame in iter_frames(root):
            if frame.exit_timestamp is None:
                continue
            self.assertEqual(frame.duration, frame.exit_timestamp - frame.timestamp)
            known = [child.duration for child in frame.children if child.duration is not None]
            self.assertEqual(frame.self_time, frame.duration - sum(known))

    def test_single_method_scenario(self):
        result = parse_log("...EXECUTION_STARTED\n1 (1000)|METHOD_ENTRY|[10]|x|Foo.bar()\n2 (2500)|METHOD_EXIT|[10]\n")
        self.assertEqual(len(result.root.children), 1)
        frame = result.root.children[0]
        self.assertEqual(frame.kind, "METHOD_ENTRY")
        self.assertEqual(frame.timestamp, 1000)
        self.assertEqual(frame.exit_timestamp, 2500)
        self.assertEqual(frame.duration, 1500)
        self.assertEqual(frame.self_time, 1500)
        self.assertEqual(result.truncations, [])

    def test_nested_durations_and_self_time(self):
        result = parse_log(NESTED_LOG)
        execution = result.root.children[0]
        self.assertEqual(execution.kind, "EXECUTION_STARTED")
        self.assertEqual(execution.duration, 1100)
        self.assertEqual(execution.self_time, 200)

        code_unit = execution.children[0]
        self.assertEqual(code_unit.text, "Foo.bar()")
        self.assertEqual(code_unit.duration, 900)
        self.assertEqual(code_unit.self_time, 300)
        self.assertEqual(
            [type(child).__name__ for child in code_unit.children],
            ["BlockGroup", "Record", "BlockGroup", "Record"]
        )
        soql = code_unit.children[3]
        self.assertEqual(soql.row_count, 3)
        self.assertEqual(soql.text, "SOQL: Aggregations:0 - SELECT Id FROM Account")
        self.assertEqual(result.truncations, [])
        self.assertEqual(result.settings, [("APEX_CODE", "FINEST"), ("APEX_PROFILING", "INFO")])
        self.assert_timing_identities(result.root)

    def test_root_is_unbounded(self):
        result = parse_log(NESTED_LOG)
        self.assertEqual(result.root.kind, "ROOT")
        self.assertIsNone(result.root.exit_timestamp)
        self.assertIsNone(result.root.duration)

    def test_empty_trace(self):
        result = parse_log("Some preamble\nEXECUTION_STARTED\n")
        self.assertEqual(result.root.children, [])
        self.assertEqual(result.truncations, [])
        self.assertEqual(result.cpu_peak, 0)

    def test_missing_closer_is_unexpected_end(self):
        result = parse_log(_log(
            "(100)|METHOD_ENTRY|[1]|a|Outer.run()",
            "(150)|USER_DEBUG|[3]|DEBUG|hello",
            "(250)|STATEMENT_EXECUTE|[4]"
        ))
        frame = result.root.children[0]
        self.assertEqual(frame.exit_timestamp, 250)
        self.assertEqual(frame.duration, 150)
        self.assertEqual(len(frame.children), 1)
        self.assertIsInstance(frame.children[0], BlockGroup)
        self.assertEqual(len(frame.children[0].records), 2)
        self.assertEqual(
            [(event.reason, event.timestamp, event.severity) for event in result.truncations],
            [("Unexpected-End", 250, Severity.UNEXPECTED)]
        )

    def test_nested_truncation_reports_once(self):
        result = parse_log(_log(
            "(100)|METHOD_ENTRY|[1]|a|Outer.run()",
            "(200)|METHOD_ENTRY|[2]|b|Inner.run()",
            "(300)|STATEMENT_EXECUTE|[4]"
        ))
        outer = result.root.children[0]
        inner = outer.children[0]
        self.assertEqual(inner.exit_timestamp, 300)
        self.assertEqual(outer.exit_timestamp, 300)
        self.assertEqual(outer.self_time, 100)
        self.assertEqual(result.truncations[0].reason, "Unexpected-End")
        self.assertEqual(len(result.truncations), 1)

    def test_mismatched_exit_is_reported_and_passed_up(self):
        result = parse_log(_log(
            "(100)|METHOD_ENTRY|[1]|a|Outer.run()",
            "(200)|METHOD_ENTRY|[2]|b|Inner.run()",
            "(400)|METHOD_EXIT|[1]"
        ))
        outer = result.root.children[0]
        inner = outer.children[0]
        self.assertEqual(inner.exit_timestamp, 400)
        self.assertEqual(outer.exit_timestamp, 400)
        self.assertEqual(len(result.root.children), 1)
        self.assertEqual(
            [(event.reason, event.timestamp) for event in result.truncations],
            [("Unexpected-Exit", 400)]
        )

    def test_exception_absorbs_mismatch(self):
        diagnostics = Diagnostics()
        records = assemble_records(
            _log(
                "(100)|METHOD_ENTRY|[1]|a|Outer.run()",
                "(200)|METHOD_ENTRY|[2]|b|Inner.run()",
                "(300)|EXCEPTION_THROWN|[5]|System.NullPointerException: boom",
                "(400)|METHOD_EXIT|[1]"
            ),
            diagnostics
        )
        builder = CallTreeBuilder(records, diagnostics)
        root = builder.build()

        self.assertFalse(builder.unwinding)
        self.assertNotIn("Unexpected-Exit", diagnostics.reasons)
        self.assertEqual(diagnostics.reasons, ["System.NullPointerException: boom"])
        outer = root.children[0]
        inner = outer.children[0]
        self.assertEqual(inner.exit_timestamp, 400)
        self.assertEqual(outer.duration, 300)
        self.assertEqual(outer.self_time, 100)

    def test_exception_without_message_is_still_reported(self):
        result = parse_log(_log(
            "(100)|METHOD_ENTRY|[1]|a|Outer.run()",
            "(200)|METHOD_ENTRY|[2]|b|Inner.run()",
            "(300)|EXCEPTION_THROWN|[5]",
            "(400)|METHOD_EXIT|[1]"
        ))
        self.assertEqual(
            [(event.timestamp, event.reason, event.severity) for event in result.truncations],
            [(300, "EXCEPTION_THROWN", Severity.ERROR)]
        )

    def test_unwinding_clears_after_absorbing_close(self):
        result = parse_log(_log(
            "(100)|METHOD_ENTRY|[1]|a|Outer.run()",
            "(200)|METHOD_ENTRY|[2]|b|Inner.run()",
            "(300)|EXCEPTION_THROWN|[5]|System.NullPointerException: boom",
            "(400)|METHOD_EXIT|[1]",
            "(500)|METHOD_ENTRY|[7]|c|Later.run()",
            "(600)|METHOD_ENTRY|[8]|d|Deeper.run()",
            "(700)|METHOD_EXIT|[7]"
        ))
        self.assertEqual(
            [event.reason for event in result.truncations],
            ["System.NullPointerException: boom", "Unexpected-Exit"]
        )

    def test_same_kind_closers_match_by_line_number(self):
        result = parse_log(_log(
            "(100)|METHOD_ENTRY|[7]|a|Fact.calc()",
            "(200)|METHOD_ENTRY|[9]|b|Fact.calc()",
            "(300)|METHOD_EXIT|[9]",
            "(400)|METHOD_EXIT|[7]"
        ))
        outer = result.root.children[0]
        inner = outer.children[0]
        self.assertEqual(inner.exit_timestamp, 300)
        self.assertEqual(outer.exit_timestamp, 400)
        self.assertEqual(outer.self_time, 200)
        self.assertEqual(result.truncations, [])

    def test_multiple_closing_kinds(self):
        result = parse_log(_log(
            "(100)|WF_CRITERIA_BEGIN|[Account: Acme 001]|Rule|01Q|Rule Name|ON_CREATE_ONLY",
            "(200)|WF_RULE_NOT_EVALUATED"
        ))
        criteria = result.root.children[0]
        self.assertEqual(criteria.duration, 100)
        self.assertEqual(criteria.text, "WF_CRITERIA : Rule Name : Rule")
        self.assertEqual(result.truncations, [])

    def test_stray_closer_at_root_is_a_leaf(self):
        result = parse_log(_log("(100)|METHOD_EXIT|[1]", "(200)|STATEMENT_EXECUTE|[2]"))
        self.assertEqual(len(result.root.children), 1)
        block = result.root.children[0]
        self.assertEqual([record.kind for record in block.records], ["METHOD_EXIT", "STATEMENT_EXECUTE"])

    def test_negative_self_time_is_not_clamped(self):
        result = parse_log(_log(
            "(100)|METHOD_ENTRY|[1]|a|Outer.run()",
            "(110)|METHOD_ENTRY|[2]|b|Inner.run()",
            "(400)|METHOD_EXIT|[2]",
            "(200)|METHOD_EXIT|[1]"
        ))
        outer = result.root.children[0]
        self.assertEqual(outer.duration, 100)
        self.assertEqual(outer.self_time, -190)

    def test_flow_interviews_take_first_interview_name(self):
        result = parse_log(_log(
            "(100)|FLOW_START_INTERVIEWS_BEGIN|1",
            "(110)|FLOW_START_INTERVIEW_BEGIN|3011|MyFlow",
            "(120)|FLOW_START_INTERVIEW_END|3011|MyFlow",
            "(130)|FLOW_START_INTERVIEWS_END|1"
        ))
        self.assertEqual(result.root.children[0].text, "FLOW_START_INTERVIEWS : 1 - MyFlow")

    def test_skipped_lines_deduplicated(self):
        result = parse_log(_log(
            "(100)|USER_INFO|[EXTERNAL]|005|user",
            "*** Skipped 200 lines",
            "(300)|STATEMENT_EXECUTE|[4]",
            "*** Skipped 10 lines"
        ))
        self.assertEqual(
            [(event.reason, event.timestamp, event.severity) for event in result.truncations],
            [("Skipped-Lines", 100, Severity.SKIP)]
        )

    def test_depth_limit(self):
        log = _log(
            "(100)|METHOD_ENTRY|[1]|a|A()",
            "(200)|METHOD_ENTRY|[2]|b|B()",
            "(300)|METHOD_ENTRY|[3]|c|C()"
        )
        with self.assertRaises(ResourceLimitError):
            parse_log(log, ParseLimits(max_depth=2))
        self.assertEqual(len(parse_log(log, ParseLimits(max_depth=3)).root.children), 1)

    def test_size_limit(self):
        with self.assertRaises(ResourceLimitError):
            parse_log(NESTED_LOG, ParseLimits(max_log_chars=10))


class TestComputeDurations(unittest.TestCase):
    def test_skips_frames_without_exit(self):
        frame = Record(kind="METHOD_ENTRY", timestamp=10, closing_kinds=frozenset({"METHOD_EXIT"}))
        compute_durations(frame)
        self.assertIsNone(frame.duration)
        self.assertIsNone(frame.self_time)

    def test_only_direct_children_are_subtracted(self):
        grandchild = Record(kind="METHOD_ENTRY", timestamp=30, duration=10)
        child = Record(kind="METHOD_ENTRY", timestamp=20, duration=40, children=[grandchild])
        frame = Record(
            kind="METHOD_ENTRY",
            timestamp=10,
            exit_timestamp=110,
            children=[BlockGroup([Record(kind="STATEMENT_EXECUTE", timestamp=15)]), child]
        )
        compute_durations(frame)
        self.assertEqual(frame.duration, 100)
        self.assertEqual(frame.self_time, 60)


if __name__ == "__main__":
    unittest.main()
