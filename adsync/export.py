"""
Export utilities for aggregated listings.
"""
from typing import List

import pandas as pd

from .models import Listing

EXPORT_COLUMNS = [
    "ad_id",
    "title",
    "price",
    "status",
    "views",
    "favorites",
    "account_id",
    "account_label",
    "href",
    "image",
]


def listings_frame(listings: List[Listing]) -> pd.DataFrame:
    """Listings as a DataFrame with a stable column order."""
    rows = [x.to_dict() for x in listings]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def save_output_rows(listings: List[Listing], out_path: str, logger=None):
    """Save listings to CSV or Excel file."""
    df = listings_frame(listings)
    if out_path.lower().endswith(".xlsx"):
        df.to_excel(out_path, index=False)
    else:
        df.to_csv(out_path, index=False)

    if logger:
        logger.info(f">>> Saved {len(df)} rows to {out_path}")
    else:
        print(f">>> Saved {len(df)} rows to {out_path}")
