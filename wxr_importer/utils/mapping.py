"""
Generation of the post mapping CSV.

After an import, :func:`generate_mapping_csv` writes one row per imported
post with its original WordPress URL next to the new one, ready to be
used as a 301 redirect map.  The input is the frame returned by
:meth:`wxr_importer.stores.DuckDBContentStore.post_mapping`.
"""

from __future__ import annotations

import os

import pandas as pd


def generate_mapping_csv(
    mapping: pd.DataFrame, *, new_base: str = "", out_path: str = "reports/import/post_mapping.csv"
) -> str:
    """Write the original-to-new post mapping as CSV.

    Parameters
    ----------
    mapping:
        Frame with ``original_id``, ``new_id``, ``post_type``, ``post_name``,
        ``link`` and ``guid`` columns.
    new_base:
        Base URL of the new site.  Posts get ``<new_base>/<post_name>``
        (falling back to the new id when the slug is empty); attachments
        keep their stored ``guid``.
    out_path:
        Location of the CSV file.  The parent directory is created
        automatically.

    Returns
    -------
    str
        The path of the generated CSV file.
    """
    df = mapping.copy()
    base = new_base.rstrip("/")
    slugs = df["post_name"].fillna("").astype(str)
    slugs = slugs.where(slugs != "", df["new_id"].astype(str))
    df["NewURL"] = (base + "/" + slugs) if base else ""
    attachments = df["post_type"] == "attachment"
    df.loc[attachments, "NewURL"] = df.loc[attachments, "guid"]
    df["OldURL"] = df["link"].where(df["link"].fillna("") != "", df["guid"])

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    df[["original_id", "new_id", "post_type", "OldURL", "NewURL"]].to_csv(out_path, index=False)
    return out_path
