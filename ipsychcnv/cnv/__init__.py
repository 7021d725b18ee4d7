"""CNV call tables and mock evaluation modules."""

from .calls import CNVRecord, MissingColumnError, load_cnv_table, records_from_dataframe
from .evaluation import MockEvaluator, EvaluationResult, evaluate_mock_results

__all__ = [
    "CNVRecord",
    "MissingColumnError",
    "load_cnv_table",
    "records_from_dataframe",
    "MockEvaluator",
    "EvaluationResult",
    "evaluate_mock_results",
]
