"""
Carbon impact lookup
Each waste category maps to a fixed impact score (kg CO2e) and reduction tips
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from wastewise.schemas import CarbonFootprint, CarbonStats, WasteCategory

UNKNOWN_IMPACT = 1.0

CARBON_IMPACT: Dict[WasteCategory, float] = {
    WasteCategory.RECYCLABLE: 0.5,
    WasteCategory.HAZARDOUS: 2.0,
    WasteCategory.ORGANIC: 0.8,
    WasteCategory.NON_RECYCLABLE: 1.5,
    WasteCategory.INDUSTRIAL: 3.0,
}

REDUCTION_SUGGESTIONS: Dict[WasteCategory, List[str]] = {
    WasteCategory.RECYCLABLE: [
        "Clean and separate materials properly before recycling",
        "Choose products with minimal packaging",
        "Reuse containers when possible",
    ],
    WasteCategory.HAZARDOUS: [
        "Use eco-friendly alternatives to hazardous products",
        "Properly dispose of hazardous waste at designated facilities",
        "Reduce usage of products containing harmful chemicals",
    ],
    WasteCategory.ORGANIC: [
        "Start composting at home",
        "Reduce food waste through meal planning",
        "Use organic waste for garden fertilizer",
    ],
    WasteCategory.NON_RECYCLABLE: [
        "Choose recyclable alternatives when available",
        "Avoid single-use products",
        "Support brands that use sustainable packaging",
    ],
    WasteCategory.INDUSTRIAL: [
        "Implement waste reduction strategies",
        "Choose suppliers with sustainable practices",
        "Invest in recycling equipment",
    ],
}

MAX_SUGGESTIONS = 5


def carbon_impact(classification: Union[WasteCategory, str, None]) -> CarbonFootprint:
    """Look up the impact and suggestions for a classification.

    Anything that is not one of the known categories (the AI may answer
    "Unknown" or something unexpected) gets an impact of 1.0 and no tips.
    """
    category = classification if isinstance(classification, WasteCategory) else WasteCategory.parse(classification)
    if category is None:
        return CarbonFootprint(impact=UNKNOWN_IMPACT, suggestions=[])
    return CarbonFootprint(
        impact=CARBON_IMPACT[category],
        suggestions=list(REDUCTION_SUGGESTIONS[category]),
    )


def summarize_footprints(rows: Iterable[Dict[str, Any]]) -> CarbonStats:
    """Aggregate carbon_footprints rows into totals, a chart series and tips"""
    ordered = sorted(rows, key=lambda r: r.get('created_at') or '')

    chart = []
    total = 0.0
    suggestions: List[str] = []
    for row in ordered:
        impact = float(row.get('carbon_impact') or 0)
        total += impact
        chart.append({"date": row.get('created_at'), "impact": impact})
        for suggestion in row.get('reduction_suggestions') or []:
            if suggestion not in suggestions:
                suggestions.append(suggestion)

    return CarbonStats(
        total_impact=round(total, 4),
        chart=chart,
        suggestions=suggestions[:MAX_SUGGESTIONS],
    )


def get_carbon_stats(client, user_id: Optional[str] = None) -> CarbonStats:
    """Fetch footprint rows (optionally for one user) and summarize them"""
    query = client.table('carbon_footprints').select('carbon_impact, created_at, reduction_suggestions')
    if user_id:
        query = query.eq('user_id', user_id)
    response = query.order('created_at').execute()
    return summarize_footprints(response.data or [])
