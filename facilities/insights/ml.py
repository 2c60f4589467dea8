"""
Statistical models behind the AI analysis endpoints.

Everything here works on plain Python sequences and returns plain dicts so
the functions stay independent of the ORM:

- consumption predictions (least squares trend, z-score anomaly rate,
  weekly seasonality)
- quantity optimisation recommendations
- monthly budget forecasts for food consumption and vehicle rentals
- consumption, kitchen and location anomalies
"""
from calendar import monthrange
from datetime import datetime

import numpy as np

SECONDS_PER_DAY = 86400
TREND_SLOPE_THRESHOLD = 0.01
ANOMALY_Z_THRESHOLD = 2.0
HIGH_ANOMALY_Z = 3.0
WEEKLY_PERIOD = 7

# 95% two-sided critical values of Student's t by degrees of freedom
T_CRITICAL_VALUES = [
    (1, 12.71), (2, 4.30), (3, 3.18), (4, 2.78), (5, 2.57), (6, 2.45),
    (7, 2.36), (8, 2.31), (9, 2.26), (10, 2.23), (15, 2.13), (20, 2.09),
    (30, 2.04), (60, 2.00), (120, 1.98),
]

REASON_DESCRIPTIONS = {
    'increasing_trend': 'Consumption is increasing rapidly, suggesting potential waste or inefficiency',
    'consumption_spikes': 'Irregular consumption spikes detected, indicating potential inventory management issues',
    'seasonal_pattern': 'Seasonal consumption pattern identified, allowing for targeted quantity adjustments',
    'stable_consumption': 'Stable consumption pattern with opportunity for modest optimization',
    'insufficient_data': 'Limited historical data available, conservative optimization recommended',
}


def to_days(moments):
    """Datetimes or dates as fractional days since the epoch"""
    days = []
    for moment in moments:
        if not isinstance(moment, datetime):
            moment = datetime(moment.year, moment.month, moment.day)
        days.append(moment.timestamp() / SECONDS_PER_DAY)
    return np.asarray(days, dtype=float)


def add_months(moment, months):
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def linear_regression(values, days):
    """Least squares fit of values over days: (slope, intercept, r2)"""
    y = np.asarray(values, dtype=float)
    x = np.asarray(days, dtype=float)
    mean_x = x.mean()
    mean_y = y.mean()
    denominator = np.sum((x - mean_x) ** 2)
    slope = float(np.sum((x - mean_x) * (y - mean_y)) / denominator) if denominator else 0.0
    intercept = float(mean_y - slope * mean_x)
    return slope, intercept, r_squared(y, slope * x + intercept)


def r_squared(actual, predicted):
    total = float(np.sum((actual - actual.mean()) ** 2))
    residual = float(np.sum((actual - predicted) ** 2))
    if total == 0:
        # flat series: a perfect fit explains everything
        return 1.0 if residual == 0 else 0.0
    return 1 - residual / total


def anomaly_flags(values, threshold=ANOMALY_Z_THRESHOLD):
    """1 where |z| exceeds the threshold, population standard deviation"""
    data = np.asarray(values, dtype=float)
    std = data.std() or 1.0
    return (np.abs((data - data.mean()) / std) > threshold).astype(int)


def moving_average(values, window):
    data = np.asarray(values, dtype=float)
    result = np.empty(len(data))
    for index in range(len(data)):
        start = max(0, index - window + 1)
        result[index] = data[start:index + 1].mean()
    return result


def seasonal_factors(values, period=WEEKLY_PERIOD):
    """
    Seasonal index for every point, averaged by position in the period and
    normalised so the factors of one period sum to `period`.

    Series shorter than two periods are not seasonal (all ones).
    """
    data = np.asarray(values, dtype=float)
    if len(data) < period * 2:
        return np.ones(len(data))

    trend = moving_average(data, period)
    ratios = np.divide(data, trend, out=np.ones(len(data)), where=trend != 0)

    positions = np.arange(len(data)) % period
    factors = np.array([
        ratios[positions == position].mean() if np.any(positions == position) else 1.0
        for position in range(period)
    ])
    total = factors.sum()
    if total:
        factors = factors * period / total
    return factors[positions]


def _confidence(r2, count, ceiling=0.95):
    return max(0.0, min(ceiling, r2 * (1 - 1 / np.sqrt(count))))


def predict_consumption(points, days_ahead=30):
    """
    Forecast the quantity `days_ahead` after the last observation.

    `points` are (moment, quantity) pairs in any order.
    """
    ordered = sorted(points, key=lambda point: point[0])
    quantities = [float(quantity) for _, quantity in ordered]

    if len(quantities) < 3:
        return {
            'predicted_quantity': quantities[-1] if quantities else 0.0,
            'confidence': 0.5,
            'trend': 'stable',
            'anomaly_score': 0.0,
            'seasonality_factor': 1.0,
        }

    days = to_days([moment for moment, _ in ordered])
    slope, intercept, r2 = linear_regression(quantities, days)
    anomaly_score = float(anomaly_flags(quantities).mean())
    seasonality = float(seasonal_factors(quantities)[-1])

    predicted = (slope * (days[-1] + days_ahead) + intercept) * seasonality
    return {
        'predicted_quantity': max(0.0, float(predicted)),
        'confidence': float(_confidence(r2, len(quantities))),
        'trend': trend_label(slope),
        'anomaly_score': anomaly_score,
        'seasonality_factor': seasonality,
    }


def trend_label(slope):
    if slope > TREND_SLOPE_THRESHOLD:
        return 'increasing'
    if slope < -TREND_SLOPE_THRESHOLD:
        return 'decreasing'
    return 'stable'


def optimization_recommendation(points, price_per_unit):
    """
    Suggested reduction of the average consumed quantity.

    10% for a rising trend, 8% for frequent spikes, 7% for a strong weekly
    pattern and 5% otherwise. Savings are reduction x average x price.
    """
    ordered = sorted(points, key=lambda point: point[0])
    quantities = [float(quantity) for _, quantity in ordered]
    price = float(price_per_unit or 0)
    average = float(np.mean(quantities)) if quantities else 0.0

    if len(quantities) < 3:
        reduction = 0.05
        return {
            'average_quantity': average,
            'recommended_quantity': average * (1 - reduction),
            'potential_savings': average * reduction * price,
            'reduction': reduction,
            'confidence': 0.5,
            'reason_code': 'insufficient_data',
            'implementation_difficulty': 'medium',
        }

    days = to_days([moment for moment, _ in ordered])
    slope, _, r2 = linear_regression(quantities, days)
    anomaly_score = float(anomaly_flags(quantities).mean())
    average_seasonality = float(seasonal_factors(quantities).mean())

    if slope > TREND_SLOPE_THRESHOLD:
        reduction, reason, difficulty = 0.10, 'increasing_trend', 'hard'
    elif anomaly_score > 0.2:
        reduction, reason, difficulty = 0.08, 'consumption_spikes', 'medium'
    elif average_seasonality > 1.1 or average_seasonality < 0.9:
        reduction, reason, difficulty = 0.07, 'seasonal_pattern', 'medium'
    else:
        reduction, reason, difficulty = 0.05, 'stable_consumption', 'easy'

    return {
        'average_quantity': average,
        'recommended_quantity': average * (1 - reduction),
        'potential_savings': average * reduction * price,
        'reduction': reduction,
        'confidence': float(_confidence(r2, len(quantities))),
        'reason_code': reason,
        'implementation_difficulty': difficulty,
    }


def consumption_anomaly(quantities):
    """Mean |z| of the last three points against the whole series"""
    data = np.asarray([float(quantity) for quantity in quantities], dtype=float)
    if len(data) < 5:
        return {
            'is_anomaly': False,
            'score': 0.0,
            'severity': 'low',
            'possible_causes': ['Insufficient data for anomaly detection'],
        }

    mean = data.mean()
    std = data.std() or 1.0
    recent = data[-3:]
    score = float(np.mean(np.abs((recent - mean) / std)))
    is_anomaly = score > ANOMALY_Z_THRESHOLD

    if score > HIGH_ANOMALY_Z:
        severity = 'high'
    elif score > ANOMALY_Z_THRESHOLD:
        severity = 'medium'
    else:
        severity = 'low'

    causes = []
    if is_anomaly:
        if recent[-1] > mean:
            causes += ['Sudden increase in consumption', 'Possible inventory error or special event']
        else:
            causes += ['Sudden decrease in consumption', 'Possible supply shortage or reduced demand']
        factors = seasonal_factors(data)
        if factors.min() > 0 and factors.max() / factors.min() > 1.5:
            causes.append('Seasonal pattern detected')

    return {
        'is_anomaly': is_anomaly,
        'score': score,
        'severity': severity,
        'possible_causes': causes or ['No anomalies detected'],
    }


def exponential_smoothing(values, alpha=0.3):
    data = np.asarray(values, dtype=float)
    if len(data) <= 1:
        return data.copy()
    smoothed = np.empty(len(data))
    smoothed[0] = data[0]
    for index in range(1, len(data)):
        smoothed[index] = alpha * data[index] + (1 - alpha) * smoothed[index - 1]
    return smoothed


def t_critical(degrees_of_freedom):
    for limit, value in T_CRITICAL_VALUES:
        if degrees_of_freedom <= limit:
            return value
    return 1.96


def _robust_fit(values, days):
    """
    Regression that drops residual outliers (modified z-score > 3.5) and
    refits when fewer than half the points are outliers.

    Returns (slope, intercept, adjusted_r2, outlier mask).
    """
    slope, intercept, r2 = linear_regression(values, days)
    residuals = values - (slope * days + intercept)
    median_abs = float(np.median(np.abs(residuals))) or 1.0
    outliers = 0.6745 * np.abs(residuals) / median_abs > 3.5

    count = len(values)
    if outliers.any() and outliers.sum() < count / 2:
        keep = ~outliers
        slope, intercept, r2 = linear_regression(values[keep], days[keep])
        count = int(keep.sum())
    else:
        outliers = np.zeros(len(values), dtype=bool)

    adjusted = 1 - (1 - r2) * (count - 1) / (count - 2) if count > 2 else r2
    return slope, intercept, adjusted, outliers


def _monthly_seasonality(values):
    """Seasonal index of the next month when the yearly spread exceeds 10%"""
    data = np.asarray(values, dtype=float)
    if len(data) < 6:
        return 1.0
    overall = data.mean()
    if not overall:
        return 1.0
    positions = np.arange(len(data)) % 12
    indices = [data[positions == month].mean() / overall for month in range(12) if np.any(positions == month)]
    if len(indices) < 2:
        return 1.0
    low, high = min(indices), max(indices)
    if low <= 0 or high / low > 1.1:
        next_index = len(data) % 12
        factor = indices[next_index] if next_index < len(indices) else 1.0
        return float(factor) or 1.0
    return 1.0


def budget_forecast(amounts, moments, months_ahead=1):
    """
    Spend forecast from monthly totals.

    The series is exponentially smoothed, fitted with outlier removal and
    bounded by a 95% prediction interval from the t distribution.
    """
    values = np.asarray([float(amount) for amount in amounts], dtype=float)
    if len(values) < 3:
        last = float(values[-1]) if len(values) else 0.0
        return {
            'predicted_amount': last,
            'confidence': 0.5,
            'upper_bound': last * 1.2,
            'lower_bound': last * 0.8,
            'risk_factor': 0.5,
        }

    days = to_days(moments)
    smoothed = exponential_smoothing(values)
    slope, intercept, adjusted_r2, outliers = _robust_fit(smoothed, days)

    target = add_months(moments[-1], months_ahead)
    target_day = float(to_days([target])[0])
    predicted = max(0.0, slope * target_day + intercept)

    kept = ~outliers
    kept_count = int(kept.sum())
    quality = 1 - outliers.sum() / len(values)
    base_confidence = min(0.98, adjusted_r2 * (1 - 1 / np.sqrt(kept_count)))
    confidence = max(0.0, float(base_confidence * quality))

    kept_values = values[kept]
    kept_days = days[kept]
    residuals = kept_values - (slope * kept_days + intercept)
    dof = kept_count - 2
    standard_error = float(np.sqrt(np.sum(residuals ** 2) / dof)) if dof > 0 else 0.0
    spread = float(np.sum((kept_days - kept_days.mean()) ** 2))
    leverage = (target_day - kept_days.mean()) ** 2 / spread if spread else 0.0
    margin = t_critical(dof) * standard_error * np.sqrt(1 + 1 / kept_count + leverage)

    adjusted = predicted * _monthly_seasonality(values)
    mean_value = kept_values.mean()
    volatility = standard_error / mean_value if mean_value else 0.0
    direction = 1 if slope > 0 else -1
    risk = 0.5 + volatility * 0.5 * direction * quality

    return {
        'predicted_amount': float(adjusted),
        'confidence': confidence,
        'upper_bound': float(adjusted + margin),
        'lower_bound': float(max(0.0, adjusted - margin)),
        'risk_factor': float(max(0.0, min(1.0, risk))),
    }


def _step_changes(values):
    """Indices where the monthly amount jumps by more than 10% or 2 sigma"""
    if len(values) < 3:
        return []
    diffs = np.abs(np.diff(values))
    threshold = diffs.mean() + 2 * diffs.std()
    changes = []
    for index in range(1, len(values)):
        change = abs(values[index] - values[index - 1])
        previous = values[index - 1]
        relative = change / previous if previous else (1.0 if change else 0.0)
        if change > threshold or relative > 0.1:
            changes.append(index)
    return changes


def _months_between(earlier, later):
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def _new_vehicle_probability(moments, changes, now):
    if not changes:
        return 0.1
    if len(changes) < 2:
        frequency = 12.0
    else:
        intervals = [_months_between(moments[a], moments[b]) for a, b in zip(changes, changes[1:])]
        frequency = float(np.mean(intervals)) or 12.0
    timing = _months_between(moments[changes[-1]], now) / frequency
    for limit, probability in ((0.5, 0.1), (0.8, 0.2), (1.0, 0.4), (1.2, 0.6), (1.5, 0.7)):
        if timing < limit:
            return probability
    return 0.8


def _stability(values):
    if len(values) < 3:
        return 0.9
    mean = values.mean()
    if not mean:
        return 0.9
    return max(0.7, 1 - values.std() / mean * 2)


def _volatility(values):
    if len(values) < 3:
        return 0.05
    previous = values[:-1]
    changes = np.divide(np.abs(np.diff(values)), previous, out=np.zeros(len(previous)), where=previous != 0)
    return min(0.5, float(changes.mean()) * 2)


def rental_forecast(amounts, moments, current_monthly, months_ahead=1, now=None):
    """
    Rental spend forecast anchored on the current monthly commitment.

    Fleet growth shows up as step changes in the history; when another step
    looks likely the average step is added, weighted by its probability.
    """
    values = np.asarray([float(amount) for amount in amounts], dtype=float)
    current = float(current_monthly or 0)
    if len(values) < 2:
        return {
            'predicted_amount': current,
            'confidence': 0.95,
            'upper_bound': current * 1.05,
            'lower_bound': current * 0.95,
            'risk_factor': 0.1,
        }

    now = now or datetime.now()
    changes = _step_changes(values)
    increases = [values[index] - values[index - 1] for index in changes if values[index] > values[index - 1]]
    average_step = float(np.mean(increases)) if increases else 0.0
    probability = _new_vehicle_probability(moments, changes, now)

    predicted = current
    if probability > 0.5 and average_step > 0:
        predicted += average_step * probability

    time_factor = max(0.7, 1 - months_ahead * 0.05)
    confidence = min(0.98, _stability(values) * time_factor)

    volatility = _volatility(values)
    step_share = average_step / current if current else 0.0
    upper = predicted * (1 + volatility * 0.5 + probability * step_share)
    lower = predicted * max(0.95, 1 - volatility * 0.5)

    return {
        'predicted_amount': float(predicted),
        'confidence': float(confidence),
        'upper_bound': float(upper),
        'lower_bound': float(lower),
        'risk_factor': float(min(0.5, volatility * 0.3 + probability * 0.2)),
    }


def combine_forecasts(food, rental):
    """Sum two forecasts; confidence weighted by predicted amount"""
    total = food['predicted_amount'] + rental['predicted_amount']
    weighted = food['confidence'] * food['predicted_amount'] + rental['confidence'] * rental['predicted_amount']
    return {
        'predicted_amount': total,
        'confidence': weighted / (total or 1),
        'upper_bound': food['upper_bound'] + rental['upper_bound'],
        'lower_bound': food['lower_bound'] + rental['lower_bound'],
        'risk_factor': max(food['risk_factor'], rental['risk_factor']),
    }


def kitchen_anomalies(rows):
    """
    Kitchens whose average use of a supply is more than 20% above the
    average across all kitchens.

    `rows` are dicts with kitchen_id, kitchen_name, floor_number,
    supply_id, supply_name, unit and quantity, one per consumption.
    """
    by_supply = {}
    by_kitchen = {}
    for row in rows:
        by_supply.setdefault(row['supply_id'], []).append(float(row['quantity']))
        kitchen = by_kitchen.setdefault(row['kitchen_id'], {
            'kitchen_id': row['kitchen_id'],
            'kitchen_name': row['kitchen_name'],
            'floor_number': row['floor_number'],
            'supplies': {},
        })
        supply = kitchen['supplies'].setdefault(row['supply_id'], {
            'food_name': row['supply_name'],
            'unit': row['unit'],
            'quantities': [],
        })
        supply['quantities'].append(float(row['quantity']))

    averages = {supply_id: float(np.mean(values)) for supply_id, values in by_supply.items()}

    results = []
    for kitchen in by_kitchen.values():
        details = []
        for supply_id, supply in kitchen['supplies'].items():
            average = averages.get(supply_id, 0.0)
            if not average:
                continue
            kitchen_average = float(np.mean(supply['quantities']))
            above = (kitchen_average - average) / average * 100
            if above > 20:
                details.append({
                    'food_name': supply['food_name'],
                    'avg_consumption': average,
                    'kitchen_consumption': kitchen_average,
                    'percentage_above_avg': above,
                    'unit': supply['unit'],
                })
        if not details:
            continue
        mean_above = float(np.mean([detail['percentage_above_avg'] for detail in details]))
        if mean_above > 50:
            severity = 'high'
        elif mean_above > 30:
            severity = 'medium'
        else:
            severity = 'low'
        details.sort(key=lambda detail: -detail['percentage_above_avg'])
        results.append({
            'kitchen_id': kitchen['kitchen_id'],
            'kitchen_name': kitchen['kitchen_name'],
            'floor_number': kitchen['floor_number'],
            'anomaly_score': mean_above / 100,
            'severity': severity,
            'details': details,
        })
    return results


def disposal_severity(purchase_amount):
    amount = float(purchase_amount or 0)
    if amount > 1000:
        return 'high'
    if amount > 500:
        return 'medium'
    return 'low'


def location_overpurchasing(assets, since):
    """
    Floor/room groups holding more than 1.2x the average asset count with
    purchases since `since`.

    `assets` are dicts with floor_number, room_number, purchase_amount and
    created_at.
    """
    if not assets:
        return []
    groups = {}
    for asset in assets:
        floor = asset['floor_number'] or 'Unknown'
        room = asset['room_number'] or 'Unknown'
        groups.setdefault((floor, room), []).append(asset)

    average = len(assets) / len(groups)
    results = []
    for (floor, room), members in groups.items():
        ratio = len(members) / average
        recent = sum(1 for asset in members if asset['created_at'] >= since)
        if ratio <= 1.2 or recent == 0:
            continue
        if ratio > 2 and recent > 3:
            severity = 'high'
        elif ratio > 1.5 and recent > 1:
            severity = 'medium'
        else:
            severity = 'low'
        results.append({
            'location': f"Floor {floor}, Room {room}",
            'floor_number': floor,
            'room_number': room,
            'total_assets': len(members),
            'total_value': sum(float(asset['purchase_amount'] or 0) for asset in members),
            'recent_purchases': recent,
            'severity': severity,
        })
    return results
