# gstr1_prep/domain/services/gstin_pan_validation.py

import re

PAN_REGEX = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
GSTIN_REGEX = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")

# Check-character alphabet: digits first, then letters
GSTIN_CHARSET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

STATE_CODES: dict[str, str] = {
    "01": "Jammu & Kashmir", "02": "Himachal Pradesh", "03": "Punjab",
    "04": "Chandigarh", "05": "Uttarakhand", "06": "Haryana",
    "07": "Delhi", "08": "Rajasthan", "09": "Uttar Pradesh",
    "10": "Bihar", "11": "Sikkim", "12": "Arunachal Pradesh",
    "13": "Nagaland", "14": "Manipur", "15": "Mizoram",
    "16": "Tripura", "17": "Meghalaya", "18": "Assam",
    "19": "West Bengal", "20": "Jharkhand", "21": "Odisha",
    "22": "Chhattisgarh", "23": "Madhya Pradesh", "24": "Gujarat",
    "26": "Dadra & Nagar Haveli and Daman & Diu", "27": "Maharashtra",
    "28": "Andhra Pradesh (Old)", "29": "Karnataka", "30": "Goa",
    "31": "Lakshadweep", "32": "Kerala", "33": "Tamil Nadu",
    "34": "Puducherry", "35": "Andaman & Nicobar Islands",
    "36": "Telangana", "37": "Andhra Pradesh", "38": "Ladakh",
    "97": "Other Territory",
}


def is_valid_pan(pan: str | None) -> bool:
    if not pan:
        return False
    pan = pan.strip().upper()
    return bool(PAN_REGEX.match(pan))


def gstin_check_char(first14: str) -> str:
    """Compute the 15th (check) character for the first 14 GSTIN characters.

    Odd positions (0-based) are doubled; each product contributes
    ``v // 36 + v % 36`` to the sum.
    """
    if len(first14) != 14:
        raise ValueError("GSTIN check character needs exactly 14 characters")

    total = 0
    for i, ch in enumerate(first14.upper()):
        value = GSTIN_CHARSET.index(ch)
        if i % 2 == 1:
            value *= 2
        total += value // 36 + value % 36
    return GSTIN_CHARSET[(36 - total % 36) % 36]


def is_valid_gstin(gstin: str | None) -> bool:
    if not gstin:
        return False
    gstin = gstin.strip().upper()
    if not GSTIN_REGEX.match(gstin):
        return False

    # PAN part inside GSTIN (chars 3-12)
    if not is_valid_pan(gstin[2:12]):
        return False

    return gstin_check_char(gstin[:14]) == gstin[14]


def state_from_gstin(gstin: str | None) -> str:
    """First two characters of a GSTIN (the state code)."""
    if not gstin:
        return ""
    return gstin.strip()[:2]


def state_name(code: str) -> str:
    return STATE_CODES.get(code, f"State Code {code}")
