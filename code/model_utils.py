# -*- coding: utf-8 -*-
"""
Created on Sat Oct  3 18:44:50 2026

model_utils.py

Coefficient tables and the Excel report for the fitted earnings models.
"""
from __future__ import annotations

import re
from pathlib import Path

import pandas as pd


CELL_PARAM_RE = re.compile(r"^C\(cell\)\[T\.(?P<area>[^|]+)\|(?P<dow>\d+)\|(?P<hour>\d+)\]$")


def sig_code(p):
    if pd.isna(p):
        return ""
    if p < 0.001:
        return "***"
    elif p < 0.01:
        return "**"
    elif p < 0.05:
        return "*"
    elif p < 0.1:
        return "."
    else:
        return ""


def coeff_table(model, drop_const=False):
    """
    One row per parameter: coef, std_err, t, pvalue, sig, and the cell the
    parameter belongs to (area_id, day_of_week, hour) when it is a cell
    dummy.
    """
    df_coef = pd.DataFrame({
        "param": model.params.index,
        "coef": model.params.values,
        "std_err": model.bse.values,
        "t": model.tvalues.values,
        "pvalue": model.pvalues.values,
    })
    df_coef["sig"] = df_coef["pvalue"].apply(sig_code)

    parts = df_coef["param"].str.extract(CELL_PARAM_RE)
    df_coef["area_id"] = parts["area"]
    df_coef["day_of_week"] = pd.to_numeric(parts["dow"])
    df_coef["hour"] = pd.to_numeric(parts["hour"])

    if drop_const:
        df_coef = df_coef[df_coef["param"] != "Intercept"]

    return df_coef.reset_index(drop=True)


def model_summary_row(model, label: str) -> dict:
    """
    Fit statistics for the Summary sheet. RLM results have no R2, so
    those cells are left empty for the robust model.
    """
    row = {
        "model_label": label,
        "model_class": type(model.model).__name__,
        "n_obs": int(model.nobs),
        "n_params": len(model.params),
        "df_resid": float(model.df_resid),
        "scale": float(model.scale),
        "r2": getattr(model, "rsquared", None),
        "r2_adj": getattr(model, "rsquared_adj", None),
    }
    # RLM keeps its norm instance on .M
    norm = getattr(model.model, "M", None)
    if norm is not None:
        row["norm"] = type(norm).__name__
    return row


def clean_sheet_name(label: str) -> str:
    name = re.sub(r"[\[\]\:\*\?\/\\]", "_", label)
    return name[:31]


def write_model_report(models: dict, out_path: Path | str) -> Path:
    """
    Write a Summary sheet plus one coefficient sheet per model.
    """
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    summary_df = pd.DataFrame(
        [model_summary_row(m, label) for label, m in models.items()]
    )

    with pd.ExcelWriter(out_path, engine="xlsxwriter") as writer:
        summary_df.to_excel(writer, sheet_name="Summary", index=False)
        for label, model in models.items():
            sheet = clean_sheet_name(label)
            coeff_table(model, drop_const=False).to_excel(writer, sheet_name=sheet, index=False)

    print(f"[Model] Model report written to: {out_path}")
    return out_path
