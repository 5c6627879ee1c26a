"""Display helpers: phone formatting and the Streamlit error presenter."""
from typing import Optional

import pandas as pd
import streamlit as st

from src.utils.errors import UserMessage, describe_error


def format_phone_number(phone, extension: Optional[str] = None):
    """
    Convert phone number to formatted string "(XXX) XXX-XXXX".
    Handles various input types including float, int, and string.

    Args:
        phone: Phone number as float, int, or string
        extension: Optional extension appended as " ext. N"

    Returns:
        Formatted phone string, the original value if formatting fails, or
        None for a missing number
    """
    if phone is None or (not isinstance(phone, str) and pd.isna(phone)):
        return None
    if isinstance(phone, str) and not phone.strip():
        return None

    if isinstance(phone, float):
        phone = int(phone)
    elif isinstance(phone, str) and "." in phone:
        # Spreadsheet round-trips turn numbers into '6135551234.0'
        try:
            phone = int(float(phone))
        except (ValueError, TypeError):
            pass

    digits = "".join(filter(str.isdigit, str(phone)))

    if len(digits) == 10:
        formatted = f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    elif len(digits) == 11 and digits[0] == "1":
        formatted = f"({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
    else:
        formatted = phone

    ext = str(extension).strip() if extension is not None else ""
    if ext and isinstance(formatted, str):
        formatted = f"{formatted} ext. {ext}"
    return formatted


def show_search_error(error: BaseException) -> None:
    """Render one user-facing message for a search failure.

    A superseded search shows nothing.
    """
    show_user_message(describe_error(error))


def show_user_message(message: Optional[UserMessage]) -> None:
    if message is None:
        return
    if message.level == "warning":
        st.warning(f"⚠️ {message.text}")
    elif message.level == "info":
        st.info(f"ℹ️ {message.text}")
    else:
        st.error(f"❌ {message.text}")
