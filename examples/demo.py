#!/usr/bin/env python3
"""demo.py — runnable example for jsonp_api.

Start:
    python examples/demo.py

Test:
    curl "http://127.0.0.1:8000/add?a=2&b=3"
    curl -H "X-Callback: render" "http://127.0.0.1:8000/weather?city=Oslo"
    curl -H "X-Callback: render" "http://127.0.0.1:8000/weather?city=Atlantis"
    curl -H "X-Callback: alert(1)" "http://127.0.0.1:8000/weather?city=Oslo"
    curl http://127.0.0.1:8000/info
"""

import logging
import os
import sys

# Allow running from repo root without installing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from jsonp_api import APIError, JsonpAPI

logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

app = JsonpAPI(title="Demo API", version="1.0.0")

FORECASTS = {"oslo": "snow", "lisbon": "sun"}


# ── Plain JSON endpoint ──────────────────────────────────────────────────────

@app.api("/add", methods=["GET"])
def add(request):
    """Add two numbers."""
    return int(request.query.get("a", 0)) + int(request.query.get("b", 0))


# ── JSONP endpoint ───────────────────────────────────────────────────────────

@app.api("/weather", methods=["GET"], media_type="application/javascript")
def weather(request):
    """Unknown cities answer 200 with ``HttpStatus: 404`` in the body."""
    city = request.query.get("city", "").lower()
    if city not in FORECASTS:
        raise APIError(404, f"No forecast for '{city}'")
    return {"city": city, "forecast": FORECASTS[city]}


# ── Run ───────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app.run(host="127.0.0.1", port=8000)
