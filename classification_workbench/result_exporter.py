"""
Export of evaluation results to a delimited table.
"""

import csv
import io
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .config import DatasetConfig, ExportConfig, config as workbench_config
from .evaluation import make_excerpt
from .exceptions import ExportError
from .models.data_models import EvaluationResult


logger = logging.getLogger(__name__)

CORRECT_SUFFIX = "_Correct"


class ResultExporter:
    """Serializes evaluation results to CSV bytes."""

    def __init__(
        self,
        export_config: Optional[ExportConfig] = None,
        dataset_config: Optional[DatasetConfig] = None
    ):
        self.config = export_config or workbench_config.export
        self.delimiter = (dataset_config or workbench_config.dataset).delimiter

    def header(self, variants: Sequence[str]) -> List[str]:
        """Header row: ID, Narrative, Actual, one column per variant, then correctness columns."""
        return (
            ["ID", "Narrative", "Actual"]
            + list(variants)
            + [f"{variant}{CORRECT_SUFFIX}" for variant in variants]
        )

    def export(
        self,
        results: Sequence[EvaluationResult],
        variants: Optional[Sequence[str]] = None
    ) -> bytes:
        """
        Serialize results to a delimited table.

        Args:
            results: Evaluation results of one test run
            variants: Column order for the variants (order of the first result if not provided)

        Returns:
            UTF-8 encoded table

        Raises:
            ExportError: If there are no results
        """
        if not results:
            raise ExportError("No results to export")

        if variants is None:
            variants = list(results[0].predictions_by_variant)

        buffer = io.StringIO()
        writer = csv.writer(
            buffer,
            delimiter=self.delimiter,
            quoting=csv.QUOTE_MINIMAL,
            lineterminator="\n"
        )
        writer.writerow(self.header(variants))

        for result in results:
            narrative = make_excerpt(
                result.narrative_excerpt, self.config.preview_length, self.config.truncation_marker
            )
            row = [str(result.id), narrative, result.actual_label or ""]
            row.extend(result.predictions_by_variant.get(variant, "") for variant in variants)
            row.extend(
                "true" if result.correctness_by_variant.get(variant, False) else "false"
                for variant in variants
            )
            writer.writerow(row)

        logger.info(f"Exported {len(results)} results for variants: {', '.join(variants)}")
        return buffer.getvalue().encode("utf-8")

    def write(self, data: bytes, filepath: Optional[Union[str, Path]] = None) -> Path:
        """
        Write exported bytes to disk.

        Args:
            data: Output of ``export``
            filepath: Destination (configured filename in the working directory if not provided)

        Returns:
            Path written

        Raises:
            ExportError: If writing fails
        """
        path = Path(filepath or self.config.filename)
        try:
            path.write_bytes(data)
        except OSError as e:
            raise ExportError(f"Failed to write export: {str(e)}")
        return path


def export_results(
    results: Sequence[EvaluationResult],
    variants: Optional[Sequence[str]] = None,
    export_config: Optional[ExportConfig] = None
) -> bytes:
    """Serialize results to CSV bytes using the given or library config."""
    return ResultExporter(export_config).export(results, variants)
