"""Flat cash-flow forecast"""

from cash_planner.domain.amounts import apply_rate_ppm, ht_from_ttc
from cash_planner.domain.models import MonthId, Settings
from cash_planner.domain.reports import ForecastLine, ForecastResult


def forecast_cashflow(start: MonthId, horizon: int, settings: Settings) -> ForecastResult:
    """
    Project `horizon` months from the flat assumptions stored in settings.

    Each month has the same HT revenue and expense TTC (no seasonality):
    - collected VAT and URSSAF are rates applied to HT
    - deductible VAT is estimated by grossing the expense TTC down at
      forecast_expense_vat_rate_ppm
    - net = revenue TTC - expense TTC
    - after_provisions = net - VAT due - URSSAF - buffer
    """
    ht = settings.forecast_ht_cents
    exp_ttc = settings.forecast_expenses_ttc_cents

    collected_tva = apply_rate_ppm(ht, settings.default_vat_rate_ppm)
    urssaf = apply_rate_ppm(ht, settings.urssaf_rate_ppm)
    exp_tva_est = exp_ttc - ht_from_ttc(exp_ttc, settings.forecast_expense_vat_rate_ppm)
    tva_due = collected_tva - max(exp_tva_est, 0)
    net = (ht + collected_tva) - exp_ttc
    after_provisions = net - tva_due - urssaf - settings.buffer_cents

    lines = []
    for i in range(max(horizon, 0)):
        month = start.plus(i)
        lines.append(
            ForecastLine(
                year=month.year,
                month=month.month,
                ht_cents=ht,
                tva_due_cents=tva_due,
                urssaf_due_cents=urssaf,
                expenses_ttc_cents=exp_ttc,
                net_cents=net,
                after_provisions_cents=after_provisions,
            )
        )

    return ForecastResult(start=start, months=lines)
