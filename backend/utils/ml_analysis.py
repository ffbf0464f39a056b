import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error


def compute_ml_performance(y_true, y_pred):
    """
    Compute the regression metrics used to compare revenue models.
    Errors are actual - predicted. Returns MAE, RMSE, MAPE, R² and bias.
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if y_true.size == 0:
        raise ValueError("Cannot score a model on an empty test set.")

    errors = y_true - y_pred
    mae = mean_absolute_error(y_true, y_pred)
    rmse = np.sqrt(mean_squared_error(y_true, y_pred))

    # weeks with no payments contribute 0 to MAPE
    pct_errors = np.divide(
        np.abs(errors) * 100.0,
        y_true,
        out=np.zeros_like(errors),
        where=y_true > 0,
    )
    mape = float(np.mean(pct_errors))

    ss_res = float(np.sum(errors ** 2))
    ss_tot = float(np.sum((y_true - y_true.mean()) ** 2))
    r2 = max(0.0, 1.0 - ss_res / ss_tot) if ss_tot > 0 else 0.0

    return {
        "MAE": float(mae),
        "RMSE": float(rmse),
        "MAPE": mape,
        "R2": r2,
        "Bias": float(np.mean(errors)),
    }


def pearson_correlation(x, y) -> float:
    """
    r = (nΣxy − ΣxΣy) / sqrt((nΣx² − (Σx)²)(nΣy² − (Σy)²)), 0 when undefined.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    n = x.size
    if n == 0 or n != y.size:
        return 0.0
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return 0.0
    sum_x, sum_y = x.sum(), y.sum()
    numerator = n * np.dot(x, y) - sum_x * sum_y
    spread = (n * np.dot(x, x) - sum_x ** 2) * (n * np.dot(y, y) - sum_y ** 2)
    if spread <= 0:
        return 0.0
    return float(numerator / np.sqrt(spread))

