# Strict DataFormatter (no fallbacks, fail loudly)
from __future__ import annotations

import bisect
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .confidence import TIDE_SOURCE_MODEL, apply_confidence_to_score, compute_confidence
from .models import AlgorithmContext, CatchReport, EnvironmentalSample, ScoreResult, TideEvent, TideSnapshot
from .recommendations import recommend
from .species_algorithms import calculate_species_score, get_algorithm
from . import unit_helpers

_LOGGER = logging.getLogger(__name__)

# ticks covered by the pressure history handed to each sample (3 h at 15 min)
PRESSURE_HISTORY_TICKS = 12
DEFAULT_SOAK_HOURS = 6.0
BEST_WINDOW_HOURS = 2.0


def _ensure_list_length_equal(key: str, timestamps: List[Any], arr: Sequence[Any]) -> None:
    if len(timestamps) != len(arr):
        raise ValueError(f"Array length mismatch for '{key}': timestamps length={len(timestamps)}, {key} length={len(arr)}")


def _iso_z(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _tide_event(raw: Any) -> Optional[TideEvent]:
    if not isinstance(raw, dict):
        return None
    height = unit_helpers._to_float(raw.get("height_m"))
    when = unit_helpers._to_float(raw.get("time"))
    if height is None or when is None:
        return None
    return TideEvent(height=height, time=when)


class DataFormatter:
    """
    Strict DataFormatter:

    - Requires payload to contain a 'minutely_15' dict with a 'time' array.
    - Marine 'hourly' arrays are aligned onto the 15-minute ticks by hour.
    - Tide arrays, when present, must match the tick count exactly.
    - Raises ValueError on any validation failure.
    """

    # Open-Meteo minutely_15 keys -> EnvironmentalSample fields
    MINUTELY_KEY_MAP = {
        "temperature_2m": "temperature",
        "wind_speed_10m": "wind_speed",
        "wind_direction_10m": "wind_direction",
        "wind_gusts_10m": "wind_gust",
        "precipitation": "precipitation",
        "cloud_cover": "cloud_cover",
        "pressure_msl": "pressure",
        "cape": "lightning_potential",
        "visibility": "visibility",
    }

    REQUIRED_MINUTELY_KEYS = ("temperature_2m", "wind_speed_10m")

    MARINE_KEYS = (
        "wave_height",
        "swell_wave_period",
        "sea_surface_temperature",
        "ocean_current_velocity",
        "ocean_current_direction",
    )

    def validate(
        self,
        raw_payload: Dict[str, Any],
        species: Sequence[str],
        version: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        now: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Normalize raw_payload and score every species on every tick.

        When `now` is given, ticks older than one interval before it only feed
        the pressure and rainfall history and are not scored.
        """
        if not isinstance(raw_payload, dict):
            raise ValueError("raw_payload must be a dict (strict)")
        block = raw_payload.get("minutely_15")
        if not isinstance(block, dict):
            raise ValueError("raw_payload must include a 'minutely_15' dict (strict)")
        if not isinstance(block.get("time"), (list, tuple)) or not block["time"]:
            raise ValueError("'minutely_15' must include a non-empty 'time' array (strict)")
        if not species:
            raise ValueError("At least one species is required (strict)")

        timestamps = [unit_helpers.to_epoch_seconds(t) for t in block["time"]]
        if any(b <= a for a, b in zip(timestamps, timestamps[1:])):
            raise ValueError("'minutely_15.time' must be strictly increasing (strict)")
        interval_s = timestamps[1] - timestamps[0] if len(timestamps) > 1 else 900.0

        missing = [k for k in self.REQUIRED_MINUTELY_KEYS if k not in block]
        if missing:
            raise ValueError(f"Missing required minutely_15 arrays: {missing} (strict)")

        units = raw_payload.get("minutely_15_units") or {}
        columns: Dict[str, List[Optional[float]]] = {}
        for om_key, field in self.MINUTELY_KEY_MAP.items():
            arr = block.get(om_key)
            if arr is None:
                continue
            if not isinstance(arr, (list, tuple)):
                raise ValueError(f"minutely_15 key '{om_key}' must be a list (strict)")
            _ensure_list_length_equal(om_key, timestamps, arr)
            columns[field] = [self._convert(om_key, v, units.get(om_key), interval_s) for v in arr]

        marine = self._align_marine(raw_payload.get("marine"), timestamps)
        tide = raw_payload.get("tide")
        if tide is not None:
            self._check_tide(tide, timestamps)
        astronomy = raw_payload.get("astronomy") or {}
        if astronomy.get("moon_phase"):
            _ensure_list_length_equal("astronomy.moon_phase", timestamps, astronomy["moon_phase"])
        observations = raw_payload.get("observations") or {}
        utc_offset = int(raw_payload.get("utc_offset_seconds") or 0)

        samples: List[EnvironmentalSample] = []
        for i, ts in enumerate(timestamps):
            values = {field: col[i] for field, col in columns.items()}
            values["wave_height"] = marine["wave_height"][i]
            values["swell_period"] = marine["swell_wave_period"][i]
            samples.append(EnvironmentalSample(timestamp=ts, **values))

        tides = [self._tide_snapshot(tide, marine, i) for i in range(len(timestamps))]
        scored_idx = [
            i for i, ts in enumerate(timestamps) if now is None or ts >= float(now) - interval_s
        ]
        if not scored_idx:
            raise ValueError("No forecast ticks at or after the current time (strict)")

        contexts = {
            i: self._context(i, timestamps, samples, tides, astronomy, observations, interval_s, utc_offset, latitude, longitude)
            for i in scored_idx
        }

        confidence = compute_confidence(
            weather="open_meteo",
            marine="open_meteo_marine" if raw_payload.get("marine") else None,
            tide=TIDE_SOURCE_MODEL if tide is not None else None,
        )

        species_out: Dict[str, Any] = {}
        for sid in species:
            key = get_algorithm(sid, version).species_id
            if key in species_out:
                continue
            results: List[Tuple[float, ScoreResult]] = [
                (timestamps[i], calculate_species_score(sid, samples[i], contexts[i], tides[i], version))
                for i in scored_idx
            ]
            species_out[key] = self._species_block(results, confidence.overall, interval_s, now)

        return {
            "timestamps": [timestamps[i] for i in scored_idx],
            "species": species_out,
            "raw_payload": raw_payload,
            "confidence": confidence.as_dict(),
        }

    # ---- conversion ----

    @staticmethod
    def _convert(om_key: str, value: Any, unit_hint: Optional[str], interval_s: float) -> Optional[float]:
        f = unit_helpers._to_float(value)
        if f is None:
            return None
        hint = str(unit_hint or "").strip().lower()
        if om_key in ("wind_speed_10m", "wind_gusts_10m"):
            if hint in ("m/s", "ms"):
                return unit_helpers.m_s_to_kmh(f)
            if hint in ("kn", "kt", "knots"):
                return unit_helpers.knots_to_kmh(f)
            if hint and hint not in ("km/h", "kmh", "kph"):
                raise ValueError(f"Unsupported wind unit '{unit_hint}' for {om_key} (strict)")
            return f
        if om_key == "visibility":
            # Open-Meteo reports metres unless told otherwise
            return f if hint == "km" else unit_helpers.m_to_km(f)
        if om_key == "precipitation":
            # per-interval amount to an hourly rate
            return f * 3600.0 / interval_s
        return f

    def _align_marine(self, marine: Any, timestamps: List[float]) -> Dict[str, List[Optional[float]]]:
        aligned: Dict[str, List[Optional[float]]] = {k: [None] * len(timestamps) for k in self.MARINE_KEYS}
        if marine is None:
            return aligned
        hourly = marine.get("hourly") if isinstance(marine, dict) else None
        if not isinstance(hourly, dict) or not isinstance(hourly.get("time"), (list, tuple)):
            raise ValueError("Marine payload must include 'hourly.time' (strict)")
        hours = [unit_helpers.to_epoch_seconds(t) for t in hourly["time"]]
        if not hours:
            return aligned
        for key in self.MARINE_KEYS:
            arr = hourly.get(key)
            if arr is None:
                continue
            _ensure_list_length_equal(f"marine.{key}", hours, arr)
            out = aligned[key]
            for i, ts in enumerate(timestamps):
                pos = bisect.bisect_right(hours, ts) - 1
                # only align inside the marine time span
                if 0 <= pos < len(hours) and ts - hours[pos] < 3600.0:
                    out[i] = unit_helpers._to_float(arr[pos])
        return aligned

    @staticmethod
    def _check_tide(tide: Any, timestamps: List[float]) -> None:
        if not isinstance(tide, dict):
            raise ValueError("tide payload must be a dict (strict)")
        for key in ("tide_height_m", "tide_rising", "current_speed_kt"):
            arr = tide.get(key)
            if not isinstance(arr, (list, tuple)):
                raise ValueError(f"tide payload missing '{key}' array (strict)")
            _ensure_list_length_equal(f"tide.{key}", timestamps, arr)

    @staticmethod
    def _tide_snapshot(tide: Optional[Dict[str, Any]], marine: Dict[str, List[Optional[float]]], i: int) -> Optional[TideSnapshot]:
        current_kmh = marine["ocean_current_velocity"][i]
        marine_kt = unit_helpers.kmh_to_knots(current_kmh) if current_kmh is not None else None
        if tide is None and marine_kt is None:
            return None

        def pick(key: str) -> Any:
            arr = (tide or {}).get(key)
            return arr[i] if isinstance(arr, (list, tuple)) and i < len(arr) else None

        speed = marine_kt if marine_kt is not None else unit_helpers._to_float(pick("current_speed_kt"))
        rising = pick("tide_rising")
        return TideSnapshot(
            current_speed=speed if speed is not None else 0.0,
            is_rising=bool(rising) if rising is not None else True,
            current_height=unit_helpers._to_float(pick("tide_height_m")),
            tidal_range=unit_helpers._to_float(pick("tidal_range_m")),
            water_temperature=marine["sea_surface_temperature"][i],
            change_rate=unit_helpers._to_float(pick("tide_rate_m_per_hr")),
            next_tide=_tide_event(pick("next_tide")),
            previous_tide=_tide_event(pick("previous_tide")),
            current_direction=marine["ocean_current_direction"][i],
        )

    # ---- per-tick context ----

    @staticmethod
    def _sun_pair(ts: float, days: Sequence[Dict[str, Any]]) -> Tuple[Optional[float], Optional[float]]:
        best: Optional[Dict[str, Any]] = None
        best_dist = None
        for day in days:
            noon = (float(day["sunrise"]) + float(day["sunset"])) / 2.0
            dist = abs(ts - noon)
            if best_dist is None or dist < best_dist:
                best, best_dist = day, dist
        if best is None:
            return None, None
        return float(best["sunrise"]), float(best["sunset"])

    @staticmethod
    def _catch_reports(raw: Any) -> Optional[Tuple[CatchReport, ...]]:
        if raw is None:
            return None
        if not isinstance(raw, (list, tuple)):
            raise ValueError("observations.catch_reports must be a list (strict)")
        reports = []
        for item in raw:
            if not isinstance(item, dict):
                raise ValueError("catch report entries must be objects (strict)")
            reports.append(CatchReport(
                days_ago=float(item["days_ago"]),
                fish_count=int(item.get("fish_count", 0)),
                success=bool(item.get("success", True)),
                hotspot_match=bool(item.get("hotspot_match", True)),
            ))
        return tuple(reports)

    def _context(
        self,
        i: int,
        timestamps: List[float],
        samples: List[EnvironmentalSample],
        tides: List[Optional[TideSnapshot]],
        astronomy: Dict[str, Any],
        observations: Dict[str, Any],
        interval_s: float,
        utc_offset: int,
        latitude: Optional[float],
        longitude: Optional[float],
    ) -> AlgorithmContext:
        ts = timestamps[i]
        sunrise, sunset = self._sun_pair(ts, astronomy.get("days") or [])

        history = tuple(
            s.pressure for s in samples[max(0, i - PRESSURE_HISTORY_TICKS):i] if s.pressure is not None
        )

        day_ticks = int(round(86400.0 / interval_s))
        window = samples[max(0, i - day_ticks + 1):i + 1]
        # precipitation is an hourly rate per tick; convert back to amounts
        rain = [s.precipitation * interval_s / 3600.0 for s in window if s.precipitation is not None]
        temps = [s.temperature for s in window if s.temperature is not None]

        soak_ticks = max(1, int(round(DEFAULT_SOAK_HOURS * 3600.0 / interval_s)))
        speeds = tuple(abs(t.current_speed) for t in tides[i:i + soak_ticks] if t is not None)

        phases = astronomy.get("moon_phase") or ()
        tide = tides[i]
        return AlgorithmContext(
            sunrise=sunrise,
            sunset=sunset,
            pressure_history=history,
            pressure_interval_minutes=interval_s / 60.0,
            soak_duration_hours=DEFAULT_SOAK_HOURS,
            wind_direction=samples[i].wind_direction,
            current_direction=tide.current_direction if tide is not None else None,
            latitude=latitude,
            longitude=longitude,
            utc_offset_seconds=utc_offset,
            catch_reports=self._catch_reports(observations.get("catch_reports")),
            bait_presence=observations.get("bait_presence"),
            current_speed_window=speeds,
            precipitation_24h=round(sum(rain), 2) if rain else None,
            max_temp_24h=max(temps) if temps else None,
            river_temperature=unit_helpers._to_float(observations.get("river_temperature")),
            solunar_major=tuple(astronomy.get("moon_major") or ()),
            solunar_minor=tuple(astronomy.get("moon_minor") or ()),
            fishery_open=observations.get("fishery_open"),
            moon_phase=unit_helpers._to_float(phases[i]) if phases else None,
        )

    # ---- output ----

    @staticmethod
    def _species_block(
        results: List[Tuple[float, ScoreResult]], confidence: float, interval_s: float, now: Optional[float]
    ) -> Dict[str, Any]:
        forecasts = []
        for ts, result in results:
            entry = {"timestamp": ts, "time": _iso_z(ts), **result.as_dict()}
            entry["confidence_adjusted_total"] = apply_confidence_to_score(result.total, confidence)
            forecasts.append(entry)

        # current: last tick at or before now, else the first tick
        current_idx = 0
        if now is not None:
            for idx, (ts, _) in enumerate(results):
                if ts <= float(now):
                    current_idx = idx
        current = dict(forecasts[current_idx])
        current["recommendation"] = recommend(results[current_idx][1]).as_dict()

        width = max(1, int(round(BEST_WINDOW_HOURS * 3600.0 / interval_s)))
        best_window = None
        for start in range(0, max(1, len(results) - width + 1)):
            chunk = results[start:start + width]
            mean = sum(r.total for _, r in chunk) / len(chunk)
            if best_window is None or mean > best_window["total"]:
                best_window = {
                    "start": _iso_z(chunk[0][0]),
                    "end": _iso_z(chunk[-1][0] + interval_s),
                    "total": round(mean, 2),
                    "score_100": int(round(mean * 10.0)),
                    "is_safe": all(r.is_safe for _, r in chunk),
                }

        return {
            "per_timestamp_forecasts": forecasts,
            "best_window": best_window,
            "current": current,
        }
