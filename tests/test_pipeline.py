# tests/test_pipeline.py
import json
import pytest
from csv_processor import pipeline as pipeline_module
from csv_processor.config import ValidationLimits
from csv_processor.engine.encoder import decode_download
from csv_processor.engine.models import (
    DatasetResult,
    DownloadResult,
    OperationRequest,
    Prose,
    from_wire,
)
from csv_processor.engine.validator import CSVValidator
from csv_processor.pipeline import CSVProcessingPipeline, process_csv, process_csv_wire

class TestCSVProcessingPipeline:

    @pytest.fixture
    def pipeline(self):
        limits = ValidationLimits(MAX_PAYLOAD_MB=15, CLIENT_MAX_FILE_SIZE_MB=10, MAX_COLUMNS=1000, MAX_ROWS=200000)
        return CSVProcessingPipeline(validator=CSVValidator(limits))

    def test_graph_structure(self, pipeline):
        """Test the workflow has one node per step"""
        assert set(pipeline.graph.nodes) == {"validation", "parsing", "operation", "download"}

    def test_empty_input_fails_before_parsing(self, pipeline, monkeypatch):
        """Test validation short-circuits so the parser never sees the payload"""
        def fail_parse(raw):
            raise AssertionError("parser must not run")

        monkeypatch.setattr(pipeline_module, "parse_csv_with_report", fail_parse)

        result = pipeline.run(OperationRequest(operation="analyze", csv_data=""))

        assert result == Prose("Error: Empty CSV data")
        assert result.is_error

    def test_unsafe_input_is_rejected(self, pipeline):
        result = pipeline.run(OperationRequest(operation="analyze", csv_data="a\n<script>x</script>"))

        assert result == Prose("Error: CSV contains potentially unsafe content")

    def test_invalid_operation(self, pipeline):
        result = pipeline.run(OperationRequest(operation="explode", csv_data="a\n1"))

        assert result.text.startswith('Error: Invalid operation "explode".')

    def test_analyze(self, pipeline):
        result = pipeline.run(OperationRequest(operation="analyze", csv_data="a,b\n1,2\n3,4"))

        assert isinstance(result, Prose)
        assert "Total rows: 2" in result.text

    def test_malformed_only_row_is_dropped(self, pipeline):
        """Test a lone short row leaves an empty table rather than an error"""
        result = pipeline.run(OperationRequest(operation="analyze", csv_data="a,b,c\n1,2"))

        assert not result.is_error
        assert "Total rows: 0" in result.text
        assert "Total columns: 3" in result.text

    def test_remove_duplicates_then_download(self, pipeline):
        """Test the processed payload of one call feeds the download of the next"""
        cleaned = pipeline.run(OperationRequest(operation="remove_duplicates", csv_data="a,b\n1,2\n1,2\n3,4"))
        assert isinstance(cleaned, DatasetResult)

        download = pipeline.run(OperationRequest(
            operation="download_data",
            csv_data="a,b\n1,2\n1,2\n3,4",
            processed_data=cleaned.processed_csv_data,
        ))

        assert isinstance(download, DownloadResult)
        assert decode_download(download.download_link) == '"a","b"\n"1","2"\n"3","4"'

    def test_download_skips_csv_validation(self, pipeline):
        """Test a download with only processed data does not need csv_data"""
        result = pipeline.run(OperationRequest(operation="download_data", processed_data="a\n1"))

        assert isinstance(result, DownloadResult)

    def test_download_with_nothing_to_encode(self, pipeline):
        result = pipeline.run(OperationRequest(operation="download_data"))

        assert result == Prose("Error: Empty CSV data")

    def test_unexpected_graph_failure(self, pipeline, monkeypatch):
        """Test a failure inside the graph is reported, not raised"""
        class BrokenGraph:
            def invoke(self, state):
                raise RuntimeError("graph down")

        monkeypatch.setattr(pipeline, "compiled_graph", BrokenGraph())

        result = pipeline.run(OperationRequest(operation="analyze", csv_data="a\n1"))

        assert result == Prose("Error processing CSV data: graph down")

    @pytest.mark.asyncio
    async def test_async_run(self, pipeline):
        """Test the async entry point gives the same result"""
        request = OperationRequest(operation="detect_outliers", csv_data="v\n1\n2\n3\n4\n100",
                                   column="v", threshold=1.5)

        result = await pipeline.arun(request)

        assert result == pipeline.run(request)
        assert "Outliers detected: 1" in result.text

class TestModuleHelpers:

    def test_process_csv(self):
        result = process_csv("a,b\n1,x\n,y\n3,z", "clean_missing", column="a", method="drop")

        assert isinstance(result, DatasetResult)
        assert "Remaining rows: 2" in result.summary

    def test_unknown_parameters_are_ignored(self):
        result = process_csv("a\n1", "analyze", colour="blue")

        assert "Total rows: 1" in result.text

    def test_dataset_wire_format(self):
        """Test dataset results serialize to a JSON object and parse back"""
        wire = process_csv_wire("a,b\n1,2\n1,2", "remove_duplicates")

        payload = json.loads(wire)
        assert set(payload) == {"summary", "processed_csv_data"}
        assert from_wire(wire) == DatasetResult(payload["summary"], payload["processed_csv_data"])

    def test_download_wire_format(self):
        wire = process_csv_wire("a\n1", "download_data", format="excel")

        assert list(json.loads(wire)) == ["download_link", "file_name", "file_format", "message"]
        assert isinstance(from_wire(wire), DownloadResult)

    def test_prose_wire_format(self):
        wire = process_csv_wire("", "analyze")

        assert wire == "Error: Empty CSV data"
        assert from_wire(wire) == Prose(wire)
