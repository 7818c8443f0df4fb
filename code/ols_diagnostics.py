# -*- coding: utf-8 -*-
"""
Created on Sun Oct  4 10:26:05 2026

Residual diagnostics for the weighted earnings model.

Usage:
    from ols_diagnostics import compute_diagnostics, save_diagnostic_report
"""

import os
import numpy as np
import matplotlib.pyplot as plt
import statsmodels.api as sm

from statsmodels.stats.diagnostic import het_breuschpagan
from statsmodels.stats.stattools import jarque_bera


def compute_diagnostics(model, robust_weights=None) -> dict:
    """
    Core diagnostics for a fitted statsmodels WLS (or OLS) result.

    Residuals are the weighted ones (model.wresid), which is what the
    WLS standard errors assume to be homoskedastic.

    Returns a dict with:
      - n, k
      - r2, adj_r2
      - rmse (weighted residuals)
      - jb_stat, jb_p
      - bp_stat, bp_p (NaN when the design is intercept-only)
      - n_downweighted, min_weight (when robust_weights is given)
    """
    resid = np.asarray(model.wresid, dtype=float)
    X = model.model.exog

    n = len(resid)
    k = X.shape[1]

    rmse = float(np.sqrt(np.mean(resid**2)))

    # normality (Jarque-Bera)
    jb_stat, jb_p, _, _ = jarque_bera(resid)

    # heteroskedasticity (Breusch-Pagan) on the unweighted design, which
    # keeps its constant column
    if k > 1 and model.df_resid > 0:
        bp_stat, bp_p, _, _ = het_breuschpagan(resid, X)
    else:
        bp_stat, bp_p = np.nan, np.nan

    diag = {
        "n": n,
        "k": k,
        "r2": float(model.rsquared),
        "adj_r2": float(model.rsquared_adj),
        "rmse": rmse,
        "jb_stat": float(jb_stat),
        "jb_p": float(jb_p),
        "bp_stat": float(bp_stat),
        "bp_p": float(bp_p),
    }

    if robust_weights is not None:
        w = np.asarray(robust_weights, dtype=float)
        diag["n_downweighted"] = int(np.sum(w < 1.0))
        diag["min_weight"] = float(np.min(w)) if len(w) else np.nan

    return diag


def save_diagnostic_report(model, diag: dict, model_name: str, out_dir: str):
    """
    Save a text summary + basic plots for diagnostics:

      - weighted residuals vs fitted
      - Q-Q plot of weighted residuals

    Files:
      {model_name}_diagnostics.txt
      {model_name}_resid_vs_fitted.png
      {model_name}_qq.png
    """
    os.makedirs(out_dir, exist_ok=True)

    # ---------- text report ----------
    txt_path = os.path.join(out_dir, f"{model_name}_diagnostics.txt")
    with open(txt_path, "w") as f:
        f.write(f"Model: {model_name}\n")
        f.write("=" * 80 + "\n\n")
        f.write(f"Observations: {int(model.nobs)}\n")
        f.write(f"Parameters:   {len(model.params)}\n\n")
        f.write("Diagnostic summary:\n")
        for k, v in diag.items():
            f.write(f"  {k}: {v}\n")
    print(f"[Diagnostics] Wrote text report: {txt_path}")

    resid = np.asarray(model.wresid, dtype=float)
    fitted = np.asarray(model.fittedvalues, dtype=float)

    # ---------- residuals vs fitted ----------
    plt.figure()
    plt.scatter(fitted, resid, alpha=0.6)
    plt.axhline(0, linestyle="--")
    plt.xlabel("Fitted hourly earnings")
    plt.ylabel("Weighted residuals")
    plt.title(f"Residuals vs Fitted ({model_name})")
    png1 = os.path.join(out_dir, f"{model_name}_resid_vs_fitted.png")
    plt.tight_layout()
    plt.savefig(png1, dpi=150)
    plt.close()
    print(f"[Diagnostics] Saved: {png1}")

    # ---------- Q-Q plot ----------
    fig = sm.ProbPlot(resid, fit=True).qqplot(line="45")
    fig.suptitle(f"Q-Q Plot of Residuals ({model_name})")
    png2 = os.path.join(out_dir, f"{model_name}_qq.png")
    fig.tight_layout()
    fig.savefig(png2, dpi=150)
    plt.close(fig)
    print(f"[Diagnostics] Saved: {png2}")

    return txt_path, png1, png2
