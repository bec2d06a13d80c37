from typing import Dict, Optional

APP_NAME = "Sport Ecommerce"


def welcome_email(name: Optional[str]) -> Dict[str, str]:
    name = name or "there"
    subject = f"Welcome to {APP_NAME}!"
    body = (
        f"Hi {name},\n\n"
        f"Thanks for creating your {APP_NAME} account.\n"
        "You can start browsing products and placing orders right away.\n\n"
        f"-- The {APP_NAME} Team"
    )
    return {"subject": subject, "body": body}


def order_cancellation(order_id: int, reason: Optional[str] = None) -> Dict[str, str]:
    subject = f"Order #{order_id} Cancelled"
    body = f"Your order #{order_id} has been cancelled.\n"
    if reason:
        body += f"Reason: {reason}\n"
    body += "\nIf this was a mistake, you are welcome to place a new order.\n" f"-- The {APP_NAME} Team"
    return {"subject": subject, "body": body}


def refund_request(order_id: int, reason: Optional[str] = None) -> Dict[str, str]:
    subject = f"Order #{order_id} Cancelled - Refund Details Needed"
    body = f"We had to cancel your paid order #{order_id}.\n"
    if reason:
        body += f"Reason: {reason}\n"
    body += (
        "\nPlease submit your bank name, account number and account holder name "
        "from the order page so we can return your payment.\n"
        f"-- The {APP_NAME} Team"
    )
    return {"subject": subject, "body": body}


def refund_success(order_id: int) -> Dict[str, str]:
    subject = f"Order #{order_id} Refund Completed"
    body = (
        f"The refund for order #{order_id} has been completed.\n"
        "Depending on your bank it may take a few days to appear on your account.\n\n"
        f"-- The {APP_NAME} Team"
    )
    return {"subject": subject, "body": body}


def refund_failed(order_id: int, reason: Optional[str] = None) -> Dict[str, str]:
    subject = f"Order #{order_id} Refund Failed"
    body = f"We could not complete the refund for order #{order_id}.\n"
    if reason:
        body += f"Reason: {reason}\n"
    body += "Please check your bank details or reply to this email.\n" f"-- The {APP_NAME} Team"
    return {"subject": subject, "body": body}
