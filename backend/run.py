#!/usr/bin/env python3
# backend/run.py
"""Development server runner."""
import os

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"Starting gymbook API at http://localhost:{port} (docs at /docs)")

    uvicorn.run("gymbook.main:app", host="0.0.0.0", port=port, reload=True, log_level="info")
