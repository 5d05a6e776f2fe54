"""Static HTML bodies shown to the buyer's browser."""

import html

_PAGE = '<html><body style="font-family:sans-serif">{body}</body></html>'


def payment_result_page(completed: bool) -> str:
    title = "Payment Completed ✅" if completed else "Payment Pending ⏳"
    return _PAGE.format(
        body=(
            f"<h2>{html.escape(title)}</h2>"
            "<p>You can return to the game. It will unlock automatically.</p>"
        )
    )


def payment_cancelled_page() -> str:
    return _PAGE.format(body="<h2>Payment Cancelled</h2>")
