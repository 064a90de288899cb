"""
Number formatting for generated attributes.

Rounding follows JavaScript ``Number.prototype.toFixed`` (ties away from
zero on the exact binary value), so output matches what JavaScript
based generators produce for the same model.
"""

import math
from decimal import Decimal, ROUND_HALF_UP

PI_SYMBOL = 'Math.PI'

# Angles are compared at 5 decimal places
_ANGLE_SCALE = 100000
_MAX_FACTOR = 10


def _js_round(value):
    """Math.round: halves round towards positive infinity."""
    return int(math.floor(value + 0.5))


def round_number(value, precision=2):
    """Round ``value`` to ``precision`` decimal digits and return a float."""
    value = float(value)
    if not math.isfinite(value):
        return value
    digits = _js_round(precision)
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def format_number(value):
    """
    Render a float the way JavaScript's Number#toString does.

    Shortest round-trip digits; exponent form only below 1e-6 or from 1e21.

    Examples:
        format_number(1.0)    -> '1'
        format_number(-0.0)   -> '0'
        format_number(1e-07)  -> '1e-7'
        format_number(1e21)   -> '1e+21'
    """
    value = float(value)
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    if value == 0:
        return '0'
    sign = '-' if value < 0 else ''
    _, digits, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = ''.join(str(d) for d in digits)
    # value == 0.<digits> * 10**point
    point = exponent + len(digits)
    if len(digits) <= point <= 21:
        text = digits + '0' * (point - len(digits))
    elif 0 < point <= 21:
        text = digits[:point] + '.' + digits[point:]
    elif -6 < point <= 0:
        text = '0.' + '0' * -point + digits
    else:
        mantissa = digits[0] + ('.' + digits[1:] if len(digits) > 1 else '')
        text = '{}e{}{}'.format(mantissa, '+' if point > 0 else '-', abs(point - 1))
    return sign + text


def fmt(value, precision=2):
    """Round and render in one step."""
    return format_number(round_number(value, precision))


def round_angle(value, precision=2):
    """
    Render a radian angle, preferring an exact multiple or fraction of pi.

    Divisors 1..10 are tried before multipliers 2..10.

    Examples:
        round_angle(math.pi / 2)   -> 'Math.PI / 2'
        round_angle(-math.pi)      -> '-Math.PI'
        round_angle(3 * math.pi)   -> 'Math.PI * 3'
        round_angle(0.3)           -> '0.3'
    """
    value = float(value)
    scaled = abs(_js_round(value * _ANGLE_SCALE))
    sign = '-' if value < 0 else ''
    for i in range(1, _MAX_FACTOR + 1):
        if scaled == _js_round(math.pi / i * _ANGLE_SCALE):
            return sign + PI_SYMBOL + (' / {}'.format(i) if i > 1 else '')
    for i in range(1, _MAX_FACTOR + 1):
        if scaled == _js_round(math.pi * i * _ANGLE_SCALE):
            return sign + PI_SYMBOL + (' * {}'.format(i) if i > 1 else '')
    return fmt(value, precision)


def vector_length(vec):
    return math.sqrt(sum(float(v) * float(v) for v in vec))
