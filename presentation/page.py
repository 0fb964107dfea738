"""HTML rendering of the demo page."""

import html
from typing import Optional, Sequence

from ocr.text_recognizer import Prediction

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>OCR App</title>
</head>
<body>
  <h1>OCR App</h1>
  <form action="/upload" method="post" enctype="multipart/form-data">
    <input type="file" name="file" accept="image/*" onchange="this.form.submit()">
    <noscript><button type="submit">Upload</button></noscript>
  </form>
{status}{predictions}
</body>
</html>
"""


def render_predictions(predictions: Sequence[Prediction]) -> str:
    """Render predictions in order, one paragraph each, as plain text."""
    return "".join(
        f"  <div>\n    <p>{html.escape(prediction.text)}</p>\n  </div>\n"
        for prediction in predictions
    )


def render_page(predictions: Sequence[Prediction], message: Optional[str] = None) -> str:
    """Render the full demo page.

    Args:
        predictions: Committed prediction list
        message: Optional status line shown above the predictions

    Returns:
        str: HTML document
    """
    status = f'  <p class="status">{html.escape(message)}</p>\n' if message else ""
    return PAGE_TEMPLATE.format(status=status, predictions=render_predictions(predictions))
