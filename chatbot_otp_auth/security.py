"""Security utilities for one-time code generation and comparison."""

import secrets


def generate_otp(length: int, developer_mode: bool) -> str:
    """
    Generate a cryptographically secure numeric OTP code.

    Every digit is drawn independently, so leading zeros are as likely as any
    other digit. In developer mode, returns a code consisting of zeros for
    easy testing.

    Args:
        length: Length of the OTP code (typically 6 digits)
        developer_mode: If True, return test code of all zeros

    Returns:
        OTP code as a string

    Example:
        >>> generate_otp(6, False)
        '048291'
        >>> generate_otp(6, True)
        '000000'
    """
    if developer_mode:
        return "0" * length

    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def codes_match(stored_code: str, supplied_code: str) -> bool:
    """Compare two codes on their string form in constant time."""
    return secrets.compare_digest(str(stored_code).encode(), str(supplied_code).encode())
