"""Run the FastAPI server

Usage:
    python main.py
    # or
    uvicorn vudl_admin.api:app --reload --host 0.0.0.0 --port 9000
"""
import uvicorn

if __name__ == "__main__":
    import argparse
    import os

    parser = argparse.ArgumentParser(description="Run the FastAPI server")
    parser.add_argument("--server.port", dest="server_port", type=int, default=int(os.getenv("PORT", 9000)), help="Port to run the server on")
    parser.add_argument("--server.address", dest="server_address", type=str, default=os.getenv("HOST", "0.0.0.0"), help="Host to run the server on")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    args, unknown = parser.parse_known_args()

    uvicorn.run(
        "vudl_admin.api:app",
        host=args.server_address,
        port=args.server_port,
        reload=args.reload,
    )
