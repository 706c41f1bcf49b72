"""Dataset sink and summary formatting"""

import json
import threading
from pathlib import Path
from typing import Any, Union


class DatasetWriter:
    """
    Append-only JSON-lines dataset.

    Each record is written as one line under a lock, so concurrent sessions
    never interleave partial lines.
    """

    def __init__(self, dataset_dir: Union[str, Path], filename: str = "vehicles.jsonl"):
        self.dataset_dir = Path(dataset_dir)
        self.path = self.dataset_dir / filename
        self._lock = threading.Lock()
        self.count = 0

    def push_data(self, record: Any) -> None:
        """Append one record (dict or object with to_dict)"""
        if hasattr(record, 'to_dict'):
            data = record.to_dict()
        elif isinstance(record, dict):
            data = record
        else:
            data = record.__dict__

        line = json.dumps(data, ensure_ascii=False, default=str)
        with self._lock:
            self.dataset_dir.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(line + "\n")
            self.count += 1


# Plain-text grid for the end-of-run summary printed by get_listings
def format_table(data, headers):
    """Render rows as a bordered text table; int cells are right-aligned"""
    if not data:
        return "No data to display"

    # Calculate column widths
    col_widths = []
    for i, header in enumerate(headers):
        max_width = len(header)
        for row in data:
            max_width = max(max_width, len(str(row[i])))
        col_widths.append(max_width + 2)

    separator = "+" + "+".join("-" * width for width in col_widths) + "+"

    table_lines = [separator]
    header_row = "|"
    for i, header in enumerate(headers):
        header_row += f" {header:<{col_widths[i]-1}}|"
    table_lines.append(header_row)
    table_lines.append(separator)

    for row in data:
        data_row = "|"
        for i, cell in enumerate(row):
            if isinstance(cell, int):
                data_row += f" {cell:>{col_widths[i]-1}}|"
            else:
                data_row += f" {str(cell):<{col_widths[i]-1}}|"
        table_lines.append(data_row)

    table_lines.append(separator)
    return "\n".join(table_lines)
