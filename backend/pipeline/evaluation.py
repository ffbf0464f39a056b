import logging
from typing import List, Sequence

from ..utils.ml_analysis import compute_ml_performance
from .records import EvaluationResult, FeatureRow
from .models import RevenueModel

logger = logging.getLogger(__name__)


def evaluate_model(model: RevenueModel, test_data: Sequence[FeatureRow]) -> EvaluationResult:
    actuals = [w.total_payments for w in test_data]
    predictions = model.predict_many(test_data)
    metrics = compute_ml_performance(actuals, predictions)
    return EvaluationResult(
        model_name=model.name,
        mae=metrics["MAE"],
        rmse=metrics["RMSE"],
        mape=metrics["MAPE"],
        r_squared=metrics["R2"],
        bias=metrics["Bias"],
        predictions=tuple(float(p) for p in predictions),
        model=model,
    )


def evaluate_models(models: Sequence[RevenueModel], test_data: Sequence[FeatureRow]) -> List[EvaluationResult]:
    logger.info("📏 Evaluating model performance...")
    results = [evaluate_model(m, test_data) for m in models]
    for r in results:
        logger.info(
            f"  {r.model_name}: MAE=${r.mae:,.0f} RMSE=${r.rmse:,.0f} "
            f"MAPE={r.mape:.1f}% R²={r.r_squared:.3f}"
        )
    return results


def select_best_model(results: Sequence[EvaluationResult], tie_tolerance: float = 100.0) -> EvaluationResult:
    """
    Lowest MAE wins. Models whose MAE is within `tie_tolerance` dollars of the
    lowest are treated as tied: the higher R² is preferred, then the lower MAE;
    an exact tie keeps the bank order.
    """
    if not results:
        raise ValueError("No model results to select from.")
    lowest_mae = min(r.mae for r in results)
    contenders = [r for r in results if r.mae - lowest_mae <= tie_tolerance]
    best = max(contenders, key=lambda r: (r.r_squared, -r.mae))
    logger.info(f"🏆 Best model: {best.model_name} with MAE of ${best.mae:,.0f}")
    return best
