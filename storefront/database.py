# storefront/database.py
"""
Table storage on plain files: one CSV (or xlsx) per table under DATA_DIR,
read whole into pandas, mutated, written back under a filelock.

Products, categories and orders are numbered 1, 2, 3, ... since the shop
addresses them by number (/api/products/3, "Pedido #12"). Users, carts,
wishlists and reviews get uuid4 hex ids.

Every cell comes back as a string; callers convert (Decimal prices, int stock).

    from storefront.database import db
    db.get_record("products", "slug", "notebook-pro-x")
    db.find_records("reviews", "product_id", 3)
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import pandas as pd
import uuid
from filelock import FileLock
from storefront.config import settings

DATA_DIR = Path(settings.DATA_DIR)
if not DATA_DIR.exists():
    DATA_DIR.mkdir(parents=True, exist_ok=True)

SEQUENTIAL_TABLES = {"products", "categories", "orders"}


class FileBackedDB:
    """One instance per data directory; tables are resolved to files lazily."""

    def __init__(self, data_dir: Path = DATA_DIR):
        self.data_dir = Path(data_dir)

    def _file_path(self, table: str) -> Path:
        # "orders" -> settings.ORDERS_FILE; "foo.xlsx" is taken as a literal filename
        if table.endswith(".csv") or table.endswith(".xlsx"):
            return Path(self.data_dir) / Path(table)

        mapping = {
            "users": settings.USERS_FILE,
            "products": settings.PRODUCTS_FILE,
            "categories": settings.CATEGORIES_FILE,
            "orders": settings.ORDERS_FILE,
            "carts": settings.CARTS_FILE,
            "wishlists": settings.WISHLISTS_FILE,
            "reviews": settings.REVIEWS_FILE,
            "site_settings": settings.SETTINGS_FILE,
        }
        filename = mapping.get(table, f"{table}.csv")
        return Path(self.data_dir) / Path(filename)

    def _lock_for(self, path: Path) -> FileLock:
        return FileLock(str(path) + ".lock")

    def _read_df(self, table: str) -> pd.DataFrame:
        path = self._file_path(table)
        if not path.exists():
            return pd.DataFrame()
        if path.suffix.lower() in (".xls", ".xlsx"):
            return pd.read_excel(path, dtype=str).fillna("")
        try:
            return pd.read_csv(path, dtype=str).fillna("")
        except pd.errors.EmptyDataError:
            return pd.DataFrame()

    def _write_df_nolock(self, path: Path, df: pd.DataFrame) -> None:
        # caller holds the lock
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() in (".xls", ".xlsx"):
            df.to_excel(path, index=False)
        else:
            df.to_csv(path, index=False)

    def _write_df(self, table: str, df: pd.DataFrame) -> None:
        path = self._file_path(table)
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock_for(path):
            self._write_df_nolock(path, df)

    def _next_id(self, df: pd.DataFrame, id_field: str) -> int:
        if df.empty or id_field not in df.columns:
            return 1
        ids = pd.to_numeric(df[id_field], errors="coerce").dropna()
        if ids.empty:
            return 1
        return int(ids.max()) + 1

    # --- CRUD ---

    def list_records(self, table: str) -> List[Dict[str, Any]]:
        df = self._read_df(table)
        if df.empty:
            return []
        return df.where(pd.notnull(df), None).to_dict(orient="records")

    def get_record(self, table: str, key: str, value: Any) -> Optional[Dict[str, Any]]:
        df = self._read_df(table)
        if df.empty or key not in df.columns:
            return None
        mask = df[key].astype(str) == str(value)
        if not mask.any():
            return None
        row = df[mask].iloc[0].to_dict()
        return {k: (None if pd.isna(v) else v) for k, v in row.items()}

    def find_records(self, table: str, key: str, value: Any) -> List[Dict[str, Any]]:
        """Return every row where df[key] == value (string comparison)."""
        return [r for r in self.list_records(table) if str(r.get(key) or "") == str(value)]

    def create_record(self, table: str, data: Dict[str, Any], id_field: str = "id") -> Dict[str, Any]:
        """Append `data` as a new row, assigning data[id_field] when it is missing.

        The id is max(existing) + 1 for numbered tables, uuid4 hex elsewhere. The
        read-modify-write happens under one lock so two writers never share an id.
        Returns `data` itself (native types, not the stringified row).
        """
        path = self._file_path(table)
        with self._lock_for(path):
            df = self._read_df(table)
            if df.empty:
                df = pd.DataFrame(columns=list(data.keys()) + ([id_field] if id_field not in data else []))
            if id_field not in data or not data.get(id_field):
                if table in SEQUENTIAL_TABLES:
                    data[id_field] = self._next_id(df, id_field)
                else:
                    data[id_field] = uuid.uuid4().hex
            new_row = {k: ("" if v is None else v) for k, v in data.items()}
            new_df = pd.DataFrame([new_row])
            df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True, sort=False)
            self._write_df_nolock(path, df)
        return data

    def update_record(self, table: str, key: str, value: Any, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Set `updates` on every matching row; unknown columns are added. Returns the first match."""
        path = self._file_path(table)
        with self._lock_for(path):
            df = self._read_df(table)
            if df.empty or key not in df.columns:
                return None
            mask = df[key].astype(str) == str(value)
            if not mask.any():
                return None
            for k, v in updates.items():
                if k not in df.columns:
                    df[k] = ""
                df[k] = df[k].astype(object)
                df.loc[mask, k] = "" if v is None else v
            self._write_df_nolock(path, df)
            row = df[mask].iloc[0].to_dict()
            return {k: (None if pd.isna(v) else v) for k, v in row.items()}

    def delete_record(self, table: str, key: str, value: Any) -> bool:
        """Drop every matching row. False when nothing matched."""
        path = self._file_path(table)
        with self._lock_for(path):
            df = self._read_df(table)
            if df.empty or key not in df.columns:
                return False
            orig_len = len(df)
            df = df[df[key].astype(str) != str(value)]
            if len(df) == orig_len:
                return False
            self._write_df_nolock(path, df)
            return True


# shared instance; tests repoint its data_dir
db = FileBackedDB()
