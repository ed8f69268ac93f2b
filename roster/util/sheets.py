import logging
from typing import Dict, List, Sequence

import gspread

logger = logging.getLogger(__name__)


class SheetGateway:
    """
    Row level access to the roster spreadsheet through one gspread client.
    Ranges are sheet-qualified A1 strings, see ``roster.util.schema``.
    """

    def __init__(self, client: gspread.Client, spreadsheet_id: str):
        self.client = client
        self.spreadsheet_id = spreadsheet_id
        self._spreadsheet = None

    @property
    def spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            self._spreadsheet = self.client.open_by_key(self.spreadsheet_id)
        return self._spreadsheet

    def read_range(self, range_spec: str) -> List[List[str]]:
        res = self.spreadsheet.values_get(range_spec)
        return res.get("values", [])

    def append_row(self, range_spec: str, values: Sequence[object]) -> dict:
        logger.debug(f"Appending to {range_spec}")
        return self.spreadsheet.values_append(
            range_spec,
            params={
                "valueInputOption": "RAW",
                "insertDataOption": "INSERT_ROWS",
                "includeValuesInResponse": False,
            },
            body={"values": [list(values)]},
        )

    def batch_update(self, updates: List[Dict[str, object]]) -> dict:
        """
        ``updates`` is a list of ``{"range": ..., "values": [...]}``, one row
        each. None cells are left untouched by the API.
        """
        logger.debug(f"Batch updating {[u['range'] for u in updates]}")
        return self.spreadsheet.values_batch_update(
            body={
                "valueInputOption": "RAW",
                "data": [
                    {"range": u["range"], "values": [list(u["values"])]}
                    for u in updates
                ],
            }
        )
