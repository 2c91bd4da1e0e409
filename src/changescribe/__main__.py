import os
import uvicorn

def main() -> None:
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(
        "changescribe.api.app:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=port,
        reload=os.getenv("CHANGESCRIBE_RELOAD", "false").lower() == "true",
    )

if __name__ == "__main__":
    main()
