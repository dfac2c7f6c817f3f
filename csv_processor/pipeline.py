# csv_processor/pipeline.py
from langgraph.graph import StateGraph, END
from typing import TypedDict, Optional, List, Dict, Any
import logging

from csv_processor.engine.csv_format import parse_csv_with_report
from csv_processor.engine.dispatcher import OperationDispatcher, parse_operation_kind
from csv_processor.engine.models import (
    OperationKind,
    OperationRequest,
    OperationResult,
    PreconditionError,
    Prose,
    Table,
    result_type,
)
from csv_processor.engine.validator import CSVValidator
from csv_processor.utils.logging_config import (
    PipelineLogger,
    log_async_execution_time,
    log_execution_time,
)

logger = logging.getLogger(__name__)

class ProcessingState(TypedDict, total=False):
    """State carried through one processing run"""
    # Input
    request: OperationRequest

    # Data
    table: Optional[Table]
    dropped_rows: int

    # Output
    result: Optional[OperationResult]

    # Workflow
    current_step: str
    next_action: str
    errors: List[str]
    execution_log: List[str]

class CSVProcessingPipeline:
    """validate -> parse -> run operation, or validate -> encode for downloads.

    Every run starts from a fresh state; nothing is kept between calls.
    """

    def __init__(self, validator: Optional[CSVValidator] = None,
                 dispatcher: Optional[OperationDispatcher] = None):
        self.validator = validator or CSVValidator()
        self.dispatcher = dispatcher or OperationDispatcher(validator=self.validator)

        self.graph = self._build_graph()
        self.compiled_graph = self.graph.compile()

        logger.debug("CSV processing pipeline initialized")

    def _build_graph(self) -> StateGraph:
        """Build the LangGraph workflow"""
        workflow = StateGraph(ProcessingState)

        workflow.add_node("validation", self._validate)
        workflow.add_node("parsing", self._parse)
        workflow.add_node("operation", self._execute)
        workflow.add_node("download", self._download)

        workflow.set_entry_point("validation")

        workflow.add_conditional_edges(
            "validation",
            self._route_after_validation,
            {
                "proceed": "parsing",
                "download": "download",
                "error": END
            }
        )

        workflow.add_edge("parsing", "operation")
        workflow.add_edge("operation", END)
        workflow.add_edge("download", END)

        return workflow

    def _route_after_validation(self, state: ProcessingState) -> str:
        """Route based on the validation outcome"""
        return state.get("next_action", "error")

    def _log(self, state: ProcessingState, message: str) -> List[str]:
        return list(state.get("execution_log") or []) + [message]

    def _fail(self, state: ProcessingState, step: str, message: str) -> Dict[str, Any]:
        return {
            "result": Prose(f"Error: {message}"),
            "current_step": step,
            "next_action": "error",
            "errors": list(state.get("errors") or []) + [message],
            "execution_log": self._log(state, f"{step} failed: {message}"),
        }

    def _validate(self, state: ProcessingState) -> Dict[str, Any]:
        """Check the operation name, then the payload unless this is a download"""
        request = state["request"]

        try:
            kind = parse_operation_kind(request.operation)
        except PreconditionError as e:
            return self._fail(state, "validation", str(e))

        # downloads validate their own payload, which may be processed_data
        if kind == OperationKind.DOWNLOAD_DATA:
            return {
                "current_step": "validation",
                "next_action": "download",
                "execution_log": self._log(state, "Download requested"),
            }

        validation = self.validator.validate(request.csv_data)
        if not validation.valid:
            logger.info(f"CSV validation failed: {validation.error}")
            return self._fail(state, "validation", validation.error)

        return {
            "current_step": "validation",
            "next_action": "proceed",
            "execution_log": self._log(state, "CSV payload validated"),
        }

    def _parse(self, state: ProcessingState) -> Dict[str, Any]:
        with PipelineLogger("parsing", logger) as step:
            report = parse_csv_with_report(state["request"].csv_data)
            step.log_metric("rows", report.table.row_count)
            if report.dropped_rows:
                step.log_metric("dropped_rows", report.dropped_rows)

        message = f"Parsed {report.table.row_count} rows, {report.table.column_count} columns"
        if report.dropped_rows:
            message += f" ({report.dropped_rows} malformed rows dropped)"

        return {
            "table": report.table,
            "dropped_rows": report.dropped_rows,
            "current_step": "parsing",
            "next_action": "operation",
            "execution_log": self._log(state, message),
        }

    def _execute(self, state: ProcessingState) -> Dict[str, Any]:
        request = state["request"]
        with PipelineLogger(f"operation:{request.operation}", logger) as step:
            result = self.dispatcher.run(state["table"], request)
            step.log_progress(f"Produced {result_type(result)} result")

        return {
            "result": result,
            "current_step": "operation",
            "next_action": "completed",
            "execution_log": self._log(state, f"Operation {request.operation} completed"),
        }

    def _download(self, state: ProcessingState) -> Dict[str, Any]:
        result = self.dispatcher.run_download(state["request"])
        return {
            "result": result,
            "current_step": "download",
            "next_action": "completed",
            "execution_log": self._log(state, "Download link generated"),
        }

    def _initial_state(self, request: OperationRequest) -> ProcessingState:
        return ProcessingState(
            request=request,
            table=None,
            dropped_rows=0,
            result=None,
            current_step="initialization",
            next_action="validation",
            errors=[],
            execution_log=[]
        )

    def _final_result(self, final_state: Dict[str, Any]) -> OperationResult:
        result = final_state.get("result")
        if result is None:
            return Prose("Error processing CSV data: no result produced")
        return result

    @log_execution_time
    def run(self, request: OperationRequest) -> OperationResult:
        """Execute one request and return its result; never raises"""
        try:
            final_state = self.compiled_graph.invoke(self._initial_state(request))
        except Exception as e:
            logger.exception(f"CSV processing failed for operation {request.operation!r}")
            return Prose(f"Error processing CSV data: {e}")
        return self._final_result(final_state)

    @log_async_execution_time
    async def arun(self, request: OperationRequest) -> OperationResult:
        """Async variant of run"""
        try:
            final_state = await self.compiled_graph.ainvoke(self._initial_state(request))
        except Exception as e:
            logger.exception(f"CSV processing failed for operation {request.operation!r}")
            return Prose(f"Error processing CSV data: {e}")
        return self._final_result(final_state)

# Shared pipeline instance
_pipeline = None

def get_pipeline() -> CSVProcessingPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = CSVProcessingPipeline()
    return _pipeline

def process_csv(csv_data: str, operation: str, **params: Any) -> OperationResult:
    """Run one operation over a CSV payload"""
    request = OperationRequest.from_dict({"csv_data": csv_data, "operation": operation, **params})
    return get_pipeline().run(request)

def process_csv_wire(csv_data: str, operation: str, **params: Any) -> str:
    """Same as process_csv, serialized to the tool's wire string"""
    return process_csv(csv_data, operation, **params).to_wire()
