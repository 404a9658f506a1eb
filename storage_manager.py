import json
import logging
import shutil
from pathlib import Path
from typing import Any, Sequence

import pandas as pd
from openpyxl import load_workbook
from openpyxl.styles import Alignment, Font, PatternFill


EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")
KNOWN_KEYS = ("section", "title", "text", "images")
TEXT_ALIASES = ("text", "summary", "content")


class ExcelStorageManager:
    def __init__(self, output_path: str, sheet_name: str = "Digest", verbose: bool = True):
        self.output_path = Path(output_path)
        self.sheet_name = sheet_name
        self.verbose = verbose
        self.columns = ["No", "Section", "Title", "Text", "Images", "Extra"]
        self.logger = logging.getLogger(self.__class__.__name__)

    def save(self, records: Sequence[Any]) -> int:
        rows = [self._to_row(index, record) for index, record in enumerate(records, start=1)]
        df = pd.DataFrame(rows, columns=self.columns)
        df = self._sanitize_for_excel(df)
        self._save_to_excel(df)

        if self.verbose:
            self.logger.info(f"saved {len(df)} rows to {self.output_path}")
        return len(df)

    def _to_row(self, index: int, record: Any) -> dict[str, Any]:
        if not isinstance(record, dict):
            return {"No": index, "Section": "", "Title": "", "Text": str(record), "Images": "", "Extra": ""}

        text = next((str(record[key]) for key in TEXT_ALIASES if record.get(key)), "")
        images = record.get("images") or []
        if isinstance(images, str):
            images = [images]
        extra = {key: value for key, value in record.items() if key not in KNOWN_KEYS + TEXT_ALIASES}
        return {
            "No": index,
            "Section": str(record.get("section") or ""),
            "Title": str(record.get("title") or ""),
            "Text": text,
            "Images": "\n".join(str(url) for url in images),
            "Extra": json.dumps(extra, ensure_ascii=False, default=str) if extra else "",
        }

    def _save_to_excel(self, df: pd.DataFrame) -> None:
        if self.output_path.exists():
            self._backup_previous()

        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.output_path.with_name(f"{self.output_path.stem}.tmp{self.output_path.suffix}")
        try:
            with pd.ExcelWriter(tmp_path, engine="openpyxl", mode="w") as writer:
                df.to_excel(writer, sheet_name=self.sheet_name, index=False)

            self._style_excel(tmp_path)
            tmp_path.replace(self.output_path)
        except PermissionError:
            self.logger.error(f"failed to save excel due to permission error (is {self.output_path} open?)")
            raise
        finally:
            tmp_path.unlink(missing_ok=True)

    def _backup_previous(self) -> None:
        backup = self.output_path.with_suffix(".xlsx.bak")
        try:
            shutil.copy2(self.output_path, backup)
        except OSError as exc:
            self.logger.warning(f"backup failed: {exc.__class__.__name__}: {exc}")

    def _style_excel(self, path: Path) -> None:
        try:
            wb = load_workbook(path)
            ws = wb[self.sheet_name]

            header_fill = PatternFill(start_color="E0E0E0", end_color="E0E0E0", fill_type="solid")
            header_font = Font(bold=True)
            center_align = Alignment(horizontal="center", vertical="center")
            wrap_align = Alignment(horizontal="left", vertical="top", wrap_text=True)

            for col_letter, width in {"A": 6, "B": 20, "C": 40, "D": 90, "E": 50, "F": 20}.items():
                ws.column_dimensions[col_letter].width = width

            for cell in ws[1]:
                cell.fill = header_fill
                cell.font = header_font
                cell.alignment = center_align

            for row_idx in range(2, ws.max_row + 1):
                ws.cell(row=row_idx, column=1).alignment = center_align
                for col_idx in (2, 3, 4, 5, 6):
                    ws.cell(row=row_idx, column=col_idx).alignment = wrap_align

            wb.save(path)
        except (KeyError, OSError, ValueError) as exc:
            if self.verbose:
                self.logger.warning(f"excel styling failed: {exc.__class__.__name__}: {exc}")

    def _sanitize_for_excel(self, dataframe: pd.DataFrame) -> pd.DataFrame:
        work = dataframe.copy()
        for column in work.columns:
            if column == "Images":
                continue
            if work[column].dtype != object:
                continue
            work[column] = work[column].map(self._escape_excel_formula)
        return work

    @staticmethod
    def _escape_excel_formula(value: object) -> object:
        if not isinstance(value, str):
            return value
        if not value or value.startswith("'"):
            return value

        stripped = value.lstrip()
        if stripped and stripped[0] in EXCEL_FORMULA_PREFIXES:
            return f"'{value}"
        return value
