"""Ordered advisories for each risk type.

Severity-driven advisories come first, then advisories tied to individual
components. Absent components never trigger a component advisory.
"""

from __future__ import annotations

from typing import List, Mapping, Tuple

from .components import ComponentScore

Components = Mapping[str, ComponentScore]


def _present(components: Components, name: str) -> ComponentScore | None:
    component = components.get(name)
    if component is None or component.absent:
        return None
    return component


def _detail(component: ComponentScore | None, key: str, default=None):
    if component is None:
        return default
    value = component.details.get(key)
    return default if value is None else value


def flood_recommendations(components: Components, severity: str) -> Tuple[str, ...]:
    advice: List[str] = []
    if severity in ("extreme", "high"):
        advice += [
            "High flood risk - Monitor weather alerts closely",
            "Prepare emergency evacuation plan",
            "Move valuable items to higher ground",
        ]

    rainfall = _present(components, "rainfall_intensity")
    if rainfall is not None and rainfall.score > 0.7:
        advice += ["Heavy rainfall detected - Avoid low-lying areas", "Check drainage systems for blockages"]

    terrain = _present(components, "terrain")
    if _detail(terrain, "elevation_m", float("inf")) < 1400:
        advice.append("Location in flood-prone valley - Extra caution advised")

    vegetation = _present(components, "vegetation_cover")
    if _detail(vegetation, "cover_category") in ("bare", "sparse"):
        advice += [
            "Limited vegetation cover increases runoff risk",
            "Consider planting vegetation for long-term flood mitigation",
        ]

    history = _present(components, "historical_frequency")
    if _detail(history, "events_per_year", 0.0) > 0.5:
        advice.append("Area has history of flooding - Review past events")

    if not advice:
        advice += ["Flood risk is currently low", "Continue monitoring weather conditions"]
    return tuple(advice)


PREDICTION_TIERS = {
    "extreme": (
        "Immediate evacuation may be necessary",
        "Monitor water levels continuously",
        "Prepare emergency supplies and evacuation routes",
    ),
    "high": (
        "Prepare for potential flooding",
        "Move valuables to higher ground",
        "Monitor weather updates closely",
    ),
    "moderate": (
        "Stay alert for changing conditions",
        "Prepare basic emergency supplies",
        "Check drainage systems",
    ),
    "low": ("Continue normal monitoring", "Maintain basic preparedness"),
}


def prediction_recommendations(components: Components, severity: str) -> Tuple[str, ...]:
    advice = list(PREDICTION_TIERS.get(severity, PREDICTION_TIERS["low"]))

    rainfall = _present(components, "recent_rainfall")
    if _detail(rainfall, "intensity_mm_per_day", 0.0) > 15:
        advice.append("High rainfall intensity detected - monitor closely")

    terrain = _present(components, "terrain_factors")
    if _detail(terrain, "elevation_m", float("inf")) < 1000:
        advice.append("Low elevation area - higher flood risk")

    vegetation = _present(components, "vegetation_runoff")
    if _detail(vegetation, "ndvi", 1.0) < 0.3:
        advice.append("Low vegetation cover increases runoff risk")
    return tuple(advice)


DROUGHT_TIERS = {
    "extreme": (
        "Extreme drought conditions - Activate water rationing plans",
        "Prioritise drinking water and livestock supply",
        "Report crop failure to local agricultural officers",
    ),
    "severe": (
        "Severe drought risk - Conserve water for essential use",
        "Delay planting of water-demanding crops",
        "Monitor seasonal forecasts closely",
    ),
    "moderate": (
        "Moderate drought risk - Use water efficiently",
        "Consider drought-tolerant crop varieties",
    ),
    "mild": ("Rainfall slightly below normal - Monitor soil moisture",),
    "none": ("No drought stress detected", "Continue monitoring rainfall"),
}


def drought_recommendations(components: Components, severity: str) -> Tuple[str, ...]:
    advice = list(DROUGHT_TIERS.get(severity, DROUGHT_TIERS["none"]))

    deficit = _present(components, "precipitation_deficit")
    if _detail(deficit, "anomaly_percent", 0.0) < -50:
        advice.append("Rainfall far below seasonal normal - Harvest and store any rain received")

    temperature = _present(components, "temperature_anomaly")
    if _detail(temperature, "anomaly_c", 0.0) > 3:
        advice.append("Temperatures well above normal - Irrigate early morning or evening")

    vegetation = _present(components, "vegetation_health")
    if vegetation is not None and vegetation.score >= 0.65:
        advice.append("Vegetation under stress - Mulch to retain soil moisture")

    soil = _present(components, "soil_moisture")
    if soil is not None and soil.score >= 0.8:
        advice.append("Very dry soil detected - Prioritise irrigation of young crops")
    return tuple(advice)


LANDSLIDE_TIERS = {
    "extreme": (
        "EXTREME LANDSLIDE RISK - Immediate action required",
        "EVACUATE if living on or below steep slopes",
        "Avoid hillside roads and paths",
        "Monitor for cracks in ground, tilting trees, or unusual water flow",
        "Contact local authorities (dial 112) if landslide signs observed",
    ),
    "high": (
        "HIGH LANDSLIDE RISK - Exercise extreme caution",
        "Avoid steep slopes and unstable hillsides",
        "Prepare evacuation plan if living in hilly areas",
        "Monitor weather forecasts for additional rainfall",
        "Watch for landslide warning signs (cracks, unusual sounds)",
    ),
    "moderate": (
        "MODERATE LANDSLIDE RISK - Stay alert",
        "Be aware of surroundings in hilly terrain",
        "Avoid construction on steep slopes during rainy season",
        "Ensure proper drainage around buildings on slopes",
    ),
    "low": (
        "Monitor conditions if living in hilly areas",
        "Maintain vegetation cover on slopes for stability",
    ),
    "very_low": (),
}


def landslide_recommendations(components: Components, severity: str) -> Tuple[str, ...]:
    tier = "extreme" if severity in ("extreme", "very_high") else severity
    advice = list(LANDSLIDE_TIERS.get(tier, ()))

    slope = _present(components, "slope_instability")
    slope_deg = _detail(slope, "slope_deg", 0.0)
    if tier == "extreme" and slope_deg > 30:
        advice.append(f"Very steep slope ({slope_deg:.1f} deg) - High instability")

    trigger = _present(components, "rainfall_trigger")
    if _detail(trigger, "triggered", False):
        advice.append(
            f"Heavy rainfall ({_detail(trigger, 'rain_72h_mm', 0.0):.0f}mm/72h) - Landslide trigger threshold exceeded"
        )

    density = _present(components, "landslide_density")
    per_100km2 = _detail(density, "density_per_100km2", 0.0)
    if per_100km2 > 0.5:
        advice.append(f"{per_100km2:.1f} landslides per 100km2 historically - High-risk zone")
        advice.append("Consult historical landslide maps before development")

    saturation = _present(components, "soil_saturation")
    if saturation is not None and saturation.score > 0.7:
        advice.append("High soil saturation - Reduced slope stability")

    if not advice:
        advice.append("Landslide risk is currently very low")
    return tuple(advice)
