"""Evaluate predicted CNV calls against mock (ground truth) CNVs."""

from typing import List, Dict, Optional, Tuple
from dataclasses import dataclass
import logging
import numpy as np
import pandas as pd

from .calls import CNVRecord, NORMAL_COPY_NUMBER, records_from_dataframe

logger = logging.getLogger(__name__)

EVALUATION_COLUMNS = [
    "CNV.Present",
    "CNV.Predicted",
    "Overlap.Length",
    "Overlap.SNP",
    "CNVID.Mock",
    "CNVID.Pred",
    "CN.Pred",
    "NumCNVs",
    "PredictedByOverlap",
]


@dataclass(frozen=True)
class EvaluationResult:
    """Classification of the predictions made for one mock CNV."""

    mock: CNVRecord
    present: int
    predicted: int
    overlap_length: float
    overlap_snp: float
    predicted_label: Optional[str]
    predicted_copy_number: int
    num_matches: int
    predicted_by_overlap: int

    @property
    def is_missed(self) -> bool:
        """Return True when no prediction overlaps the mock CNV."""
        return self.num_matches == 0

    def to_dict(self) -> Dict:
        """Convert to dictionary keyed by output column names."""
        return {
            "CNV.Present": self.present,
            "CNV.Predicted": self.predicted,
            "Overlap.Length": self.overlap_length,
            "Overlap.SNP": self.overlap_snp,
            "CNVID.Mock": self.mock.label,
            "CNVID.Pred": self.predicted_label,
            "CN.Pred": self.predicted_copy_number,
            "NumCNVs": self.num_matches,
            "PredictedByOverlap": self.predicted_by_overlap,
        }


class MockEvaluator:
    """Match predicted CNVs to mock CNVs and classify each prediction."""

    def __init__(
        self,
        min_overlap: float = 80.0,
        max_overlap: float = 120.0,
        normal_copy_number: int = NORMAL_COPY_NUMBER
    ):
        """Initialize evaluator.

        Args:
            min_overlap: Overlap percentage that must be exceeded for a
                variant call to count as predicted by overlap.
            max_overlap: Overlap percentage that must not be reached.
            normal_copy_number: Copy number of a non-CNV region.
        """
        self.min_overlap = min_overlap
        self.max_overlap = max_overlap
        self.normal_copy_number = normal_copy_number

    def evaluate(
        self,
        mock_cnvs: List[CNVRecord],
        predicted_cnvs: List[CNVRecord]
    ) -> List[EvaluationResult]:
        """Classify predictions for every mock CNV.

        Args:
            mock_cnvs: Ground truth records.
            predicted_cnvs: Records called by a detection algorithm.

        Returns:
            One result per mock CNV, in input order.
        """
        index = self._index_predictions(predicted_cnvs)
        return [
            self.evaluate_one(mock, index.get((mock.sample_id, mock.chromosome), []))
            for mock in mock_cnvs
        ]

    def _index_predictions(
        self,
        predicted_cnvs: List[CNVRecord]
    ) -> Dict[Tuple[str, str], List[CNVRecord]]:
        """Group predictions by sample and chromosome, keeping input order."""
        index = {}
        for call in predicted_cnvs:
            index.setdefault((call.sample_id, call.chromosome), []).append(call)
        return index

    def _select_best_match(
        self,
        mock: CNVRecord,
        matches: List[CNVRecord]
    ) -> CNVRecord:
        """Keep the longest overlapping prediction, the first one on ties."""
        longest = max(m.length for m in matches)
        candidates = [m for m in matches if m.length == longest]
        if len(candidates) > 1:
            logger.warning(
                f"{len(candidates)} predictions of equal length {longest} overlap "
                f"{mock.label or mock.sample_id} on chr{mock.chromosome}:"
                f"{mock.start}-{mock.stop}; using the first"
            )
        return candidates[0]

    def evaluate_one(
        self,
        mock: CNVRecord,
        predictions: List[CNVRecord]
    ) -> EvaluationResult:
        """Classify the predictions for a single mock CNV.

        Args:
            mock: Ground truth record.
            predictions: Predicted records for the same sample and chromosome.

        Returns:
            Evaluation result for the mock CNV.
        """
        present = int(mock.copy_number != self.normal_copy_number)
        matches = [p for p in predictions if mock.overlaps(p)]

        if not matches:
            return EvaluationResult(
                mock=mock,
                present=present,
                predicted=0,
                overlap_length=0.0,
                overlap_snp=0.0,
                predicted_label=None,
                predicted_copy_number=self.normal_copy_number,
                num_matches=0,
                predicted_by_overlap=0
            )

        best = self._select_best_match(mock, matches) if len(matches) > 1 else matches[0]

        overlap_length = mock.overlap_length(best) / mock.length * 100
        if mock.num_snps:
            overlap_snp = best.num_snps / mock.num_snps * 100
        else:
            overlap_snp = np.nan

        if not present:
            # in a non-CNV region any call strictly inside counts, whatever its overlap
            inside = any(mock.contains(p) for p in predictions)
            predicted = int(inside)
            predicted_by_overlap = int(inside)
        elif best.copy_number == mock.copy_number:
            predicted = 1
            predicted_by_overlap = int(self.min_overlap < overlap_length < self.max_overlap)
        else:
            predicted = 0
            predicted_by_overlap = 0

        return EvaluationResult(
            mock=mock,
            present=present,
            predicted=predicted,
            overlap_length=overlap_length,
            overlap_snp=overlap_snp,
            predicted_label=best.label,
            predicted_copy_number=best.copy_number,
            num_matches=len(matches),
            predicted_by_overlap=predicted_by_overlap
        )

    def evaluate_dataframe(
        self,
        mock_df: pd.DataFrame,
        predicted_df: pd.DataFrame
    ) -> pd.DataFrame:
        """Evaluate predictions given as tables.

        Args:
            mock_df: Ground truth table, including a CNVID column.
            predicted_df: Predicted CNV table.

        Returns:
            Evaluation columns followed by all ground truth columns, one row
            per ground truth row in the same order.
        """
        mock_cnvs = records_from_dataframe(mock_df, require_label=True, table="mock CNVs")
        predicted_cnvs = records_from_dataframe(predicted_df, table="predicted CNVs")

        logger.info(
            f"Evaluating {len(predicted_cnvs)} predicted CNVs against "
            f"{len(mock_cnvs)} mock CNVs"
        )
        results = self.evaluate(mock_cnvs, predicted_cnvs)
        return self.join(results, mock_df)

    def join(self, results: List[EvaluationResult], mock_df: pd.DataFrame) -> pd.DataFrame:
        """Prepend evaluation columns to the ground truth table."""
        if len(results) != len(mock_df):
            raise ValueError(
                f"Got {len(results)} results for {len(mock_df)} mock CNVs"
            )
        return pd.concat(
            [self.to_dataframe(results), mock_df.reset_index(drop=True)],
            axis=1
        )

    def to_dataframe(self, results: List[EvaluationResult]) -> pd.DataFrame:
        """Convert evaluation results to a DataFrame."""
        if not results:
            return pd.DataFrame(columns=EVALUATION_COLUMNS)
        return pd.DataFrame([r.to_dict() for r in results], columns=EVALUATION_COLUMNS)

    def summarize(self, results: List[EvaluationResult]) -> Dict:
        """Generate sensitivity and precision statistics for results."""
        if not results:
            return {
                "total": 0,
                "true_positives": 0,
                "false_negatives": 0,
                "true_negatives": 0,
                "false_positives": 0,
                "variants_predicted_by_overlap": 0,
                "sensitivity": 0.0,
                "specificity": 0.0,
                "precision": 0.0,
                "overlap_sensitivity": 0.0
            }

        tp = sum(1 for r in results if r.present and r.predicted)
        fn = sum(1 for r in results if r.present and not r.predicted)
        tn = sum(1 for r in results if not r.present and not r.predicted)
        fp = sum(1 for r in results if not r.present and r.predicted)
        by_overlap = sum(1 for r in results if r.present and r.predicted_by_overlap)

        return {
            "total": len(results),
            "true_positives": tp,
            "false_negatives": fn,
            "true_negatives": tn,
            "false_positives": fp,
            "variants_predicted_by_overlap": by_overlap,
            "sensitivity": _ratio(tp, tp + fn),
            "specificity": _ratio(tn, tn + fp),
            "precision": _ratio(tp, tp + fp),
            "overlap_sensitivity": _ratio(by_overlap, tp + fn)
        }


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


def evaluate_mock_results(
    mock_df: pd.DataFrame,
    predicted_df: pd.DataFrame,
    **kwargs
) -> pd.DataFrame:
    """Evaluate predicted CNVs against mock CNVs with default settings."""
    return MockEvaluator(**kwargs).evaluate_dataframe(mock_df, predicted_df)
