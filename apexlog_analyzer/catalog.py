"""Record catalog: Apex debug log type tags and how each line is read."""

from __future__ import annotations

import logging
import re
import string
from dataclasses import dataclass
from typing import Callable

from apexlog_analyzer.diagnostics import Diagnostics
from apexlog_analyzer.errors import LogParseError
from apexlog_analyzer.records import (
    BlockGroup,
    Record,
    Severity,
    parse_line_number,
    parse_rows,
    parse_timestamp
)

logger = logging.getLogger(__name__)

FIELD_DELIMITER = "|"
TYPE_PATTERN = re.compile(r"^[A-Z_]*$")
SKIPPED_MARKER = "*** Skipped"
MAX_SIZE_MARKER = "MAXIMUM DEBUG LOG SIZE REACHED"
CPU_TIME_PATTERN = re.compile(r"Maximum CPU time: (\d+)")
NANOS_PER_MILLI = 1_000_000


class _FieldFormatter(string.Formatter):
    """Formats `{N}` placeholders from split fields; absent fields render empty."""

    def get_value(self, key, args, kwargs):
        if isinstance(key, int):
            return args[key] if key < len(args) else ""
        return super().get_value(key, args, kwargs)


_formatter = _FieldFormatter()


@dataclass(frozen=True)
class RecordKind:
    closing_kinds: tuple[str, ...] = ()
    is_closing: bool = False
    accepts_text: bool = False
    discontinuity: bool = False
    line_field: int | None = None
    rows_field: int | None = None
    value_field: int | None = None
    text: str | Callable[[list[str]], str] = ""
    group: str | None = None
    namespace: str | None = None
    category: str | None = None
    build: Callable[[Record, list[str]], None] | None = None
    on_close: Callable[[Record, Record], None] | None = None
    on_next_record: Callable[[Record, Record, Diagnostics], None] | None = None
    diagnostic: Callable[[Record, list[str]], tuple[str, Severity] | None] | None = None


def _field(parts: list[str], index: int, line: str) -> str:
    if index >= len(parts):
        raise LogParseError(f"Missing field {index} in {parts[1]} line", line)
    return parts[index]


def _render(template: str, parts: list[str], record: Record) -> str:
    return _formatter.format(template, *parts, type=record.kind, line=record.line_number)


# -- per-kind builders and hooks ----------------------------------------------

def _method_entry(record: Record, parts: list[str]) -> None:
    record.text = parts[4] if len(parts) > 4 and parts[4] else record.kind
    # class loading is not charged against the CPU limit
    record.category = "loading" if record.text == "System.Type.forName(String, String)" else "method"


def _constructor_entry(record: Record, parts: list[str]) -> None:
    args = parts[4] if len(parts) > 4 else ""
    name = parts[5] if len(parts) > 5 else ""
    paren = args.rfind("(")
    record.text = name + (args[paren:] if paren >= 0 else args)


def _object_namespace(text: str) -> str:
    sep = text.find("__")
    return text[:sep] if sep >= 0 else "unmanaged"


def _vf_namespace(text: str) -> str:
    sep = text.find("__")
    first_slash = text.find("/")
    second_slash = text.find("/", first_slash + 1) if first_slash >= 0 else -1
    if sep < 0 or second_slash < 0:
        return "unmanaged"
    return text[second_slash + 1:sep]


def _code_unit(record: Record, parts: list[str]) -> None:
    descriptor = parts[3] if len(parts) > 3 else ""
    name = parts[4] if len(parts) > 4 and parts[4] else descriptor
    unit_type, _, unit_name = descriptor.partition(":")
    if unit_type == "EventService":
        record.category = "method"
        record.namespace = _object_namespace(unit_name)
        record.group = f"EventService {record.namespace}"
        record.text = descriptor
    elif unit_type == "Validation":
        record.category = "custom"
        record.group = "Validation"
        record.text = name or descriptor
    elif unit_type == "Workflow":
        record.category = "custom"
        record.group = "Workflow"
        record.text = name or unit_type
    else:
        record.category = "method"
        if name.startswith("VF:"):
            record.namespace = _vf_namespace(name)
        record.text = name


def _managed_package(record: Record, parts: list[str]) -> None:
    raw = parts[2] if len(parts) > 2 else ""
    record.namespace = record.text = raw[raw.rfind(".") + 1:]


def _managed_package_exit(record: Record, next_record: Record, diagnostics: Diagnostics) -> None:
    # a package entry lasts until whatever is logged next
    record.exit_timestamp = next_record.timestamp
    record.duration = record.self_time = record.exit_timestamp - record.timestamp


def _copy_rows(record: Record, end: Record) -> None:
    record.row_count = end.row_count


def _first_interview(record: Record, end: Record) -> None:
    if not record.children:
        return
    first = record.children[0]
    if isinstance(first, BlockGroup):
        first = first.records[0]
    record.text += " - " + first.text


def _cpu_usage(record: Record, next_record: Record, diagnostics: Diagnostics) -> None:
    matched = CPU_TIME_PATTERN.search(record.text)
    if matched:
        diagnostics.record_cpu_time(int(matched.group(1)) * NANOS_PER_MILLI)


def _exception(record: Record, parts: list[str]) -> tuple[str, Severity]:
    return record.text or record.kind, Severity.ERROR


def _fatal_error(record: Record, parts: list[str]) -> tuple[str, Severity]:
    return f"FATAL ERROR! cause={record.text}", Severity.ERROR


def _flow_action_detail(parts: list[str]) -> str:
    text = _formatter.format("{2} : {3}", *parts)
    if len(parts) > 4 and parts[4]:
        text += _formatter.format(" : {4} :{5}", *parts)
    return text


# -- the catalog ----------------------------------------------------------------

_K = RecordKind
_EXIT = _K(is_closing=True)
_EXIT_LINE = _K(is_closing=True, line_field=2)
_LINE = _K(line_field=2)
_PLAIN = _K()
_TEXT = _K(accepts_text=True)

CATALOG: dict[str, RecordKind] = {
    "BULK_HEAP_ALLOCATE": _K(text="{2}"),
    "CALLOUT_REQUEST": _K(text="{3} : {2}"),
    "CALLOUT_RESPONSE": _K(text="{3} : {2}"),
    "NAMED_CREDENTIAL_REQUEST": _K(text="{3} : {4} : {5} : {6}"),
    "NAMED_CREDENTIAL_RESPONSE": _K(text="{2}"),
    "NAMED_CREDENTIAL_RESPONSE_DETAIL": _K(text="{3} : {4} {5} : {6} {7}"),
    "CONSTRUCTOR_ENTRY": _K(
        closing_kinds=("CONSTRUCTOR_EXIT",), line_field=2, category="method", build=_constructor_entry
    ),
    "CONSTRUCTOR_EXIT": _EXIT_LINE,
    "EMAIL_QUEUE": _LINE,
    "METHOD_ENTRY": _K(closing_kinds=("METHOD_EXIT",), line_field=2, build=_method_entry),
    "METHOD_EXIT": _EXIT_LINE,
    "SYSTEM_CONSTRUCTOR_ENTRY": _K(
        closing_kinds=("SYSTEM_CONSTRUCTOR_EXIT",), line_field=2, text="{3}",
        namespace="system", category="method"
    ),
    "SYSTEM_CONSTRUCTOR_EXIT": _K(is_closing=True, line_field=2, namespace="system"),
    "SYSTEM_METHOD_ENTRY": _K(
        closing_kinds=("SYSTEM_METHOD_EXIT",), line_field=2, text="{3}",
        namespace="system", category="method"
    ),
    "SYSTEM_METHOD_EXIT": _K(is_closing=True, line_field=2, namespace="system"),
    "CODE_UNIT_STARTED": _K(closing_kinds=("CODE_UNIT_FINISHED",), build=_code_unit),
    "CODE_UNIT_FINISHED": _K(is_closing=True, text="{2}"),
    "VF_APEX_CALL_START": _K(closing_kinds=("VF_APEX_CALL_END",), line_field=2, category="method"),
    "VF_APEX_CALL_END": _K(is_closing=True, text="{2}"),
    "VF_DESERIALIZE_VIEWSTATE_BEGIN": _K(
        closing_kinds=("VF_DESERIALIZE_VIEWSTATE_END",), text="{type}", namespace="system", category="method"
    ),
    "VF_DESERIALIZE_VIEWSTATE_END": _EXIT,
    "VF_EVALUATE_FORMULA_BEGIN": _K(
        closing_kinds=("VF_EVALUATE_FORMULA_END",), text="{3}", group="{type}", category="custom"
    ),
    "VF_EVALUATE_FORMULA_END": _K(is_closing=True, text="{2}"),
    "VF_SERIALIZE_VIEWSTATE_BEGIN": _K(
        closing_kinds=("VF_SERIALIZE_VIEWSTATE_END",), text="{type}", namespace="system", category="method"
    ),
    "VF_SERIALIZE_VIEWSTATE_END": _EXIT,
    "VF_PAGE_MESSAGE": _K(text="{2}"),
    "DML_BEGIN": _K(
        closing_kinds=("DML_END",), line_field=2, rows_field=5, text="DML {3} {4}", group="DML", category="free"
    ),
    "DML_END": _EXIT_LINE,
    "IDEAS_QUERY_EXECUTE": _LINE,
    "SOQL_EXECUTE_BEGIN": _K(
        closing_kinds=("SOQL_EXECUTE_END",), line_field=2, text="SOQL: {3} - {4}", group="SOQL",
        category="free", on_close=_copy_rows
    ),
    "SOQL_EXECUTE_END": _K(is_closing=True, line_field=2, rows_field=3),
    "SOQL_EXECUTE_EXPLAIN": _K(line_field=2, text="{3}, line:{line}"),
    "SOSL_EXECUTE_BEGIN": _K(
        closing_kinds=("SOSL_EXECUTE_END",), line_field=2, text="SOSL: {3}", group="SOQL",
        category="free", on_close=_copy_rows
    ),
    "SOSL_EXECUTE_END": _K(is_closing=True, line_field=2, rows_field=3),
    "HEAP_ALLOCATE": _LINE,
    "HEAP_DEALLOCATE": _LINE,
    "STATEMENT_EXECUTE": _LINE,
    "VARIABLE_SCOPE_BEGIN": _K(line_field=2, value_field=4, text="{3}", group="{type}"),
    "VARIABLE_SCOPE_END": _PLAIN,
    "VARIABLE_ASSIGNMENT": _K(line_field=2, value_field=4, text="{3}", group="{type}"),
    "USER_INFO": _K(line_field=2, text="{type}:{3} {4}", group="{type}"),
    "USER_DEBUG": _K(accepts_text=True, line_field=2, text="{type}:{3} {4}", group="{type}"),
    "CUMULATIVE_LIMIT_USAGE": _K(
        closing_kinds=("CUMULATIVE_LIMIT_USAGE_END",), text="{type}", group="{type}", category="system"
    ),
    "CUMULATIVE_LIMIT_USAGE_END": _EXIT,
    "CUMULATIVE_PROFILING": _K(accepts_text=True, text="{2} {3}"),
    "CUMULATIVE_PROFILING_BEGIN": _K(closing_kinds=("CUMULATIVE_PROFILING_END",)),
    "CUMULATIVE_PROFILING_END": _EXIT,
    "LIMIT_USAGE": _K(line_field=2, text="{3} {4} out of {5}", group="{type}"),
    "LIMIT_USAGE_FOR_NS": _K(accepts_text=True, text="{2}", group="{type}", on_next_record=_cpu_usage),
    "POP_TRACE_FLAGS": _K(line_field=2, text="{4}, line:{line} - {5}", namespace="system"),
    "PUSH_TRACE_FLAGS": _K(line_field=2, text="{4}, line:{line} - {5}", namespace="system"),
    "QUERY_MORE_BEGIN": _K(closing_kinds=("QUERY_MORE_END",), line_field=2, text="line: {line}"),
    "QUERY_MORE_END": _K(is_closing=True, line_field=2, text="line: {line}"),
    "QUERY_MORE_ITERATIONS": _K(line_field=2, text="line: {line}, iterations:{3}"),
    "TOTAL_EMAIL_RECIPIENTS_QUEUED": _K(text="{2}"),
    "SAVEPOINT_ROLLBACK": _K(line_field=2, text="{3}, line: {line}"),
    "SAVEPOINT_SET": _K(line_field=2, text="{3}"),
    "STACK_FRAME_VARIABLE_LIST": _TEXT,
    "STATIC_VARIABLE_LIST": _TEXT,
    "SYSTEM_MODE_ENTER": _K(text="{2}", namespace="system"),
    "SYSTEM_MODE_EXIT": _K(text="{2}", namespace="system"),
    "EXECUTION_STARTED": _K(closing_kinds=("EXECUTION_FINISHED",), text="{type}"),
    "EXECUTION_FINISHED": _K(is_closing=True, text="{type}"),
    "ENTERING_MANAGED_PKG": _K(category="pkg", build=_managed_package, on_next_record=_managed_package_exit),
    "EVENT_SERVICE_PUB_BEGIN": _K(
        closing_kinds=("EVENT_SERVICE_PUB_END",), text="{2}", group="{type}", category="custom"
    ),
    "EVENT_SERVICE_PUB_END": _K(is_closing=True, text="{2}"),
    "EVENT_SERVICE_PUB_DETAIL": _K(text="{2} {3} {4}", group="{type}"),
    "EVENT_SERVICE_SUB_BEGIN": _K(
        closing_kinds=("EVENT_SERVICE_SUB_END",), text="{2} {3}", group="{type}", category="custom"
    ),
    "EVENT_SERVICE_SUB_DETAIL": _K(text="{2} {3} {4} {5} {6}", group="{type}"),
    "EVENT_SERVICE_SUB_END": _K(is_closing=True, text="{2} {3}"),
    "FLOW_START_INTERVIEWS_BEGIN": _K(
        closing_kinds=("FLOW_START_INTERVIEWS_END",), text="FLOW_START_INTERVIEWS : {2}",
        group="FLOW_START_INTERVIEWS", category="custom", on_close=_first_interview
    ),
    "FLOW_START_INTERVIEWS_END": _EXIT,
    "FLOW_START_INTERVIEWS_ERROR": _K(text="{2} - {4}"),
    "FLOW_START_INTERVIEW_BEGIN": _K(text="{3}", group="{type}"),
    "FLOW_START_INTERVIEW_END": _PLAIN,
    "FLOW_START_INTERVIEW_LIMIT_USAGE": _K(text="{2}", group="{type}"),
    "FLOW_START_SCHEDULED_RECORDS": _K(text="{2} : {3}"),
    "FLOW_CREATE_INTERVIEW_BEGIN": _PLAIN,
    "FLOW_CREATE_INTERVIEW_END": _PLAIN,
    "FLOW_CREATE_INTERVIEW_ERROR": _K(text="{2} : {3} : {4} : {5}"),
    "FLOW_ELEMENT_BEGIN": _K(
        closing_kinds=("FLOW_ELEMENT_END",), text="{type} - {3} {4}", group="{type}", category="custom"
    ),
    "FLOW_ELEMENT_END": _EXIT,
    "FLOW_ELEMENT_DEFERRED": _K(text="{2} {3}", group="{type}"),
    "FLOW_ELEMENT_ERROR": _K(text="{1}{2} {3} {4}"),
    "FLOW_ELEMENT_FAULT": _K(text="{2} : {3} : {4}"),
    "FLOW_ELEMENT_LIMIT_USAGE": _K(text="{2}"),
    "FLOW_INTERVIEW_FINISHED_LIMIT_USAGE": _K(text="{2}"),
    "FLOW_SUBFLOW_DETAIL": _K(text="{2} : {3} : {4} : {5}"),
    "FLOW_VALUE_ASSIGNMENT": _K(text="{3} {4}", group="{type}"),
    "FLOW_WAIT_EVENT_RESUMING_DETAIL": _K(text="{2} : {3} : {4} : {5}"),
    "FLOW_WAIT_EVENT_WAITING_DETAIL": _K(text="{2} : {3} : {4} : {5} : {6}"),
    "FLOW_WAIT_RESUMING_DETAIL": _K(text="{2} : {3} : {4}"),
    "FLOW_WAIT_WAITING_DETAIL": _K(text="{2} : {3} : {4} : {5}"),
    "FLOW_INTERVIEW_FINISHED": _K(text="{3}", group="{type}"),
    "FLOW_INTERVIEW_PAUSED": _K(text="{2} : {3} : {4}"),
    "FLOW_INTERVIEW_RESUMED": _K(text="{2} : {3}"),
    "FLOW_ACTIONCALL_DETAIL": _K(text="{3} : {4} : {5} : {6}", group="{type}"),
    "FLOW_ASSIGNMENT_DETAIL": _K(text="{3} : {4} : {5}", group="{type}"),
    "FLOW_LOOP_DETAIL": _K(text="{3} : {4}", group="{type}"),
    "FLOW_RULE_DETAIL": _K(text="{3} : {4}", group="{type}"),
    "FLOW_BULK_ELEMENT_BEGIN": _K(
        closing_kinds=("FLOW_BULK_ELEMENT_END",), text="{type} - {2}", group="{type}", category="custom"
    ),
    "FLOW_BULK_ELEMENT_END": _EXIT,
    "FLOW_BULK_ELEMENT_DETAIL": _K(text="{2} : {3} : {4}", group="{type}"),
    "FLOW_BULK_ELEMENT_LIMIT_USAGE": _K(text="{2}", group="{type}"),
    "FLOW_BULK_ELEMENT_NOT_SUPPORTED": _K(text="{2} : {3} : {4}"),
    "PUSH_NOTIFICATION_INVALID_APP": _K(text="{2}.{3}"),
    "PUSH_NOTIFICATION_INVALID_CERTIFICATE": _K(text="{2}.{3}"),
    "PUSH_NOTIFICATION_INVALID_NOTIFICATION": _K(text="{2}.{3} : {4} : {5} : {6} : {7} : {8}"),
    "PUSH_NOTIFICATION_NO_DEVICES": _K(text="{2}.{3}"),
    "PUSH_NOTIFICATION_NOT_ENABLED": _PLAIN,
    "PUSH_NOTIFICATION_SENT": _K(text="{2}.{3} : {4} : {5} : {6} : {7}"),
    "SLA_END": _K(text="{2} : {3} : {4} : {5} : {6}"),
    "SLA_EVAL_MILESTONE": _K(text="{2}"),
    "SLA_NULL_START_DATE": _PLAIN,
    "SLA_PROCESS_CASE": _K(text="{2}"),
    "TESTING_LIMITS": _TEXT,
    "VALIDATION_ERROR": _K(text="{2}"),
    "VALIDATION_FAIL": _PLAIN,
    "VALIDATION_FORMULA": _K(accepts_text=True, text="{2} {3}", group="{type}"),
    "VALIDATION_PASS": _K(text="{3}", group="{type}"),
    "VALIDATION_RULE": _K(text="{3}", group="{type}"),
    "WF_FLOW_ACTION_BEGIN": _PLAIN,
    "WF_FLOW_ACTION_END": _PLAIN,
    "WF_FLOW_ACTION_ERROR": _K(text="{1} {4}"),
    "WF_FLOW_ACTION_ERROR_DETAIL": _K(text="{1} {2}"),
    "WF_FIELD_UPDATE": _K(text="{2} {3} {4} {5} {6}", group="{type}"),
    "WF_RULE_EVAL_BEGIN": _K(closing_kinds=("WF_RULE_EVAL_END",), text="{type}", category="custom"),
    "WF_RULE_EVAL_END": _EXIT,
    "WF_RULE_EVAL_VALUE": _K(text="{2}", group="{type}"),
    "WF_RULE_FILTER": _K(accepts_text=True, text="{2}", group="{type}"),
    "WF_RULE_NOT_EVALUATED": _EXIT,
    "WF_CRITERIA_BEGIN": _K(
        closing_kinds=("WF_CRITERIA_END", "WF_RULE_NOT_EVALUATED"), text="WF_CRITERIA : {5} : {3}",
        group="WF_CRITERIA", category="custom"
    ),
    "WF_CRITERIA_END": _EXIT,
    "WF_FORMULA": _K(accepts_text=True, text="{2} : {3}", group="{type}"),
    "WF_ACTION": _K(text="{2}", group="{type}"),
    "WF_ACTIONS_END": _K(text="{2}"),
    "WF_ACTION_TASK": _K(text="{2} : {3} : {4} : {5} : {6} : {7}"),
    "WF_APPROVAL": _K(text="{2} : {3} : {4}"),
    "WF_APPROVAL_REMOVE": _K(text="{2}"),
    "WF_APPROVAL_SUBMIT": _K(text="{2}"),
    "WF_APPROVAL_SUBMITTER": _K(text="{2} : {3} : {4}"),
    "WF_ASSIGN": _K(text="{2} : {3}"),
    "WF_EMAIL_ALERT": _K(text="{2} : {3} : {4}"),
    "WF_EMAIL_SENT": _K(text="{2} : {3} : {4}"),
    "WF_ENQUEUE_ACTIONS": _K(text="{2}"),
    "WF_ESCALATION_ACTION": _K(text="{2} : {3}"),
    "WF_ESCALATION_RULE": _PLAIN,
    "WF_EVAL_ENTRY_CRITERIA": _K(text="{2} : {3} : {4}"),
    "WF_FLOW_ACTION_DETAIL": _K(text=_flow_action_detail),
    "WF_HARD_REJECT": _PLAIN,
    "WF_NEXT_APPROVER": _K(text="{2} : {3} : {4}"),
    "WF_NO_PROCESS_FOUND": _PLAIN,
    "WF_OUTBOUND_MSG": _K(text="{2} : {3} : {4} : {5}"),
    "WF_PROCESS_FOUND": _K(text="{2} : {3}"),
    "WF_REASSIGN_RECORD": _K(text="{2} : {3}"),
    "WF_RESPONSE_NOTIFY": _K(text="{2} : {3} : {4} : {5}"),
    "WF_RULE_ENTRY_ORDER": _K(text="{2}"),
    "WF_RULE_INVOCATION": _K(text="{2}"),
    "WF_SOFT_REJECT": _K(text="{2}"),
    "WF_SPOOL_ACTION_BEGIN": _K(text="{2}"),
    "WF_TIME_TRIGGER": _K(text="{2} : {3} : {4} : {5}"),
    "WF_TIME_TRIGGERS_BEGIN": _PLAIN,
    "EXCEPTION_THROWN": _K(
        discontinuity=True, line_field=2, text="{3}", group="{type}", diagnostic=_exception
    ),
    "FATAL_ERROR": _K(accepts_text=True, discontinuity=True, text="{2}", diagnostic=_fatal_error),
    "XDS_DETAIL": _K(text="{2}"),
    "XDS_RESPONSE": _K(text="{2} : {3} : {4} : {5} : {6}"),
    "XDS_RESPONSE_DETAIL": _K(text="{2}"),
    "XDS_RESPONSE_ERROR": _K(text="{2}"),
}


def build_record(parts: list[str], line: str) -> Record:
    """Construct a record for a recognized type tag; raises LogParseError on malformed fields."""
    kind_name = parts[1]
    kind = CATALOG[kind_name]
    try:
        record = Record(
            kind=kind_name,
            timestamp=parse_timestamp(parts[0]),
            closing_kinds=frozenset(kind.closing_kinds),
            is_closing=kind.is_closing,
            accepts_trailing_text=kind.accepts_text,
            marks_discontinuity=kind.discontinuity,
            on_close=kind.on_close,
            on_next_record=kind.on_next_record,
            namespace=kind.namespace,
            category=kind.category,
            raw=line
        )
        if kind.line_field is not None:
            record.line_number = parse_line_number(_field(parts, kind.line_field, line))
        if kind.rows_field is not None:
            record.row_count = parse_rows(_field(parts, kind.rows_field, line))
    except LogParseError as exc:
        raise LogParseError(str(exc), line) from exc

    if kind.value_field is not None and kind.value_field < len(parts):
        record.value = parts[kind.value_field]
    if callable(kind.text):
        record.text = kind.text(parts)
    elif kind.text:
        record.text = _render(kind.text, parts, record)
    if kind.group:
        record.group = _render(kind.group, parts, record)
    if kind.build:
        kind.build(record, parts)
    return record


def classify_line(line: str, previous: Record | None, diagnostics: Diagnostics) -> Record | None:
    """
    Classify one physical line.

    Returns the new record, or None when the line was folded into the
    previous record, recorded as a truncation marker, or dropped.
    """
    parts = line.split(FIELD_DELIMITER)
    type_field = parts[1] if len(parts) > 1 else None

    if type_field in CATALOG:
        record = build_record(parts, line)
        kind = CATALOG[type_field]
        if kind.diagnostic:
            reported = kind.diagnostic(record, parts)
            if reported:
                diagnostics.truncate(record.timestamp, *reported)
        if previous is not None and previous.on_next_record:
            previous.on_next_record(previous, record, diagnostics)
        return record

    looks_like_type = type_field is not None and TYPE_PATTERN.match(type_field)
    if previous is not None and previous.accepts_trailing_text and not looks_like_type:
        # wrapped text from the previous record
        previous.text += f" | {line}"
    elif type_field:
        logger.warning("Unknown log line: %s", type_field)
    elif previous is not None and line.startswith(SKIPPED_MARKER):
        diagnostics.truncate(previous.timestamp, "Skipped-Lines", Severity.SKIP)
    elif previous is not None and MAX_SIZE_MARKER in line:
        diagnostics.truncate(previous.timestamp, "Max-Size-reached", Severity.SKIP)
    else:
        logger.warning("Bad log line: %s", line)
    return None
