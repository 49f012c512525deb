"""
Startup script for the LLKB backend
"""

import os

# Force unbuffered output
os.environ['PYTHONUNBUFFERED'] = '1'

if __name__ == "__main__":
    import uvicorn

    print("\n Starting LLKB Backend Server...", flush=True)
    print(" Server will run on: http://localhost:8000", flush=True)
    print(" API Docs available at: http://localhost:8000/docs", flush=True)
    print("\n" + "="*50, flush=True)

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=False,
        log_level="info",
        access_log=True
    )
