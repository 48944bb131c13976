"""
Parser for delimited narrative tables.

Turns an uploaded CSV-style table into an immutable Dataset, validating that
the header carries the narrative and ground-truth label columns.
"""

import csv
import io
import logging
from pathlib import Path
from typing import List, Optional, Union

from .config import DatasetConfig, config as workbench_config
from .exceptions import SchemaError
from .models.data_models import Dataset, DatasetRole, Record


logger = logging.getLogger(__name__)


class TabularDatasetParser:
    """Parses delimited text into validated Datasets."""

    def __init__(self, dataset_config: Optional[DatasetConfig] = None):
        """
        Initialize the parser.

        Args:
            dataset_config: Column names, delimiter and encoding (library config if not provided)

        Raises:
            SchemaError: If the configuration cannot describe a table
        """
        self.config = dataset_config or workbench_config.dataset

        if len(self.config.delimiter) != 1:
            raise SchemaError("Delimiter must be a single character")
        if not self.config.narrative_column or not self.config.label_column:
            raise SchemaError("Narrative and label column names cannot be empty")

    @property
    def required_columns(self) -> List[str]:
        return [self.config.narrative_column, self.config.label_column]

    def parse(
        self,
        content: Union[str, bytes],
        role: DatasetRole = DatasetRole.TRAINING,
        source_name: Optional[str] = None
    ) -> Dataset:
        """
        Parse a delimited table into a Dataset.

        Blank lines are skipped. Rows shorter than the header get empty strings
        for the missing trailing fields; surplus fields are ignored.

        Args:
            content: Raw table as text or bytes
            role: Role of the dataset in the workflow
            source_name: Optional name of the uploaded file

        Returns:
            Dataset preserving file order

        Raises:
            SchemaError: If the content cannot be decoded or a required column is missing
        """
        text = self._decode(content)
        reader = csv.reader(io.StringIO(text), delimiter=self.config.delimiter)

        header = self._read_header(reader)
        missing = [column for column in self.required_columns if column not in header]
        if missing:
            raise SchemaError(f"missing required column: {', '.join(missing)}", missing_columns=missing)

        records: List[Record] = []
        try:
            for row in reader:
                if self._is_blank(row):
                    continue

                fields = {
                    column: (row[index].strip() if index < len(row) else "")
                    for index, column in enumerate(header)
                }
                label = fields[self.config.label_column]
                records.append(
                    Record(
                        record_id=len(records) + 1,
                        text=fields[self.config.narrative_column],
                        label=label if label else None,
                        fields=fields
                    )
                )
        except csv.Error as e:
            raise SchemaError(f"Malformed row {reader.line_num}: {str(e)}")

        logger.debug(f"Parsed {len(records)} {role.value} records from {source_name or 'upload'}")

        return Dataset(
            records=tuple(records),
            role=role,
            columns=tuple(header),
            source_name=source_name
        )

    def _decode(self, content: Union[str, bytes]) -> str:
        if isinstance(content, str):
            return content.lstrip("\ufeff")

        encoding = self.config.encoding
        if encoding.lower().replace("-", "") == "utf8":
            encoding = "utf-8-sig"
        try:
            return content.decode(encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise SchemaError(f"Cannot decode table as {self.config.encoding}: {str(e)}")

    def _read_header(self, reader) -> List[str]:
        try:
            header = next(reader)
        except StopIteration:
            return []
        except csv.Error as e:
            raise SchemaError(f"Malformed header row: {str(e)}")
        return [column.strip() for column in header]

    @staticmethod
    def _is_blank(row: List[str]) -> bool:
        # csv yields [] for an empty line and [' '] for a whitespace-only one
        return not row or (len(row) == 1 and not row[0].strip())


def parse_dataset(
    content: Union[str, bytes],
    role: DatasetRole = DatasetRole.TRAINING,
    dataset_config: Optional[DatasetConfig] = None,
    source_name: Optional[str] = None
) -> Dataset:
    """Parse a delimited table into a Dataset using the given or library config."""
    return TabularDatasetParser(dataset_config).parse(content, role=role, source_name=source_name)


def load_dataset_file(
    filepath: Union[str, Path],
    role: DatasetRole = DatasetRole.TRAINING,
    dataset_config: Optional[DatasetConfig] = None
) -> Dataset:
    """
    Read and parse a table from disk.

    Raises:
        SchemaError: If the file is missing, unreadable or malformed
    """
    path = Path(filepath)
    if not path.exists():
        raise SchemaError(f"Dataset file not found: {filepath}")

    if not path.is_file():
        raise SchemaError(f"Path is not a file: {filepath}")

    try:
        content = path.read_bytes()
    except OSError as e:
        raise SchemaError(f"Failed to read dataset file: {str(e)}")

    return parse_dataset(content, role=role, dataset_config=dataset_config, source_name=path.name)
