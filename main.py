import argparse
import sys
from pathlib import Path
from csv_processor.engine.models import DatasetResult, OperationKind, OperationRequest
from csv_processor.pipeline import CSVProcessingPipeline
from csv_processor.utils.logging_config import setup_logging
from csv_processor.config import get_config

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CSV cleaning and analysis")
    parser.add_argument("--csv-path", required=True, help="Path to the CSV file")
    parser.add_argument("--operation", required=True, choices=OperationKind.values(), help="Operation to run")
    parser.add_argument("--column", help="Target column")
    parser.add_argument("--condition", help="Substring to keep rows by (filter)")
    parser.add_argument("--method", help="Missing value method: drop, mean, median or mode")
    parser.add_argument("--threshold", type=float, help="Z-score threshold (detect_outliers)")
    parser.add_argument("--format", choices=["csv", "excel"], help="Download format (download_data)")
    parser.add_argument("--output", help="Write the processed CSV to this path")
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    return parser

def main(argv=None):
    """Main entry point for the CSV processor"""
    args = build_parser().parse_args(argv)

    config = get_config(args.config)
    setup_logging(log_level=args.log_level, log_dir=str(config.paths.LOGS_DIR), log_to_file=config.log_to_file)

    csv_path = Path(args.csv_path)
    if not csv_path.exists():
        print(f"Error: CSV file not found at {args.csv_path}")
        sys.exit(1)

    request = OperationRequest(
        operation=args.operation,
        csv_data=csv_path.read_text(encoding="utf-8-sig"),
        column=args.column,
        condition=args.condition,
        method=args.method,
        threshold=args.threshold,
        format=args.format,
        file_name=f"{csv_path.stem}_cleaned.{'xls' if args.format == 'excel' else 'csv'}",
    )

    issues = config.validate_config()
    if issues:
        print(f"Configuration issues: {'; '.join(issues)}")
        sys.exit(1)

    result = CSVProcessingPipeline().run(request)

    if isinstance(result, DatasetResult):
        print(result.summary)
        if args.output:
            Path(args.output).write_text(result.processed_csv_data + "\n", encoding="utf-8")
            print(f"Processed data written to {args.output}")
    else:
        print(result.to_wire())

    if getattr(result, "is_error", False):
        sys.exit(1)

if __name__ == "__main__":
    main()
