# backend/formadb/serve.py
"""
Run the API with uvicorn.

  python -m formadb.serve            # HOST / PORT / RELOAD from env
  python -m formadb.serve --port 9000 --reload
"""

import argparse
import importlib.util
import logging
import os
from typing import Dict, List, Optional

import uvicorn

logger = logging.getLogger("formadb.serve")

TRUTHY = {"1", "true", "yes", "on"}

# Modules the PDF endpoints import lazily; the API starts without them.
RENDER_MODULES = ("playwright", "reportlab")


def _ssl_options() -> Dict[str, str]:
    env_to_option = {
        "SSL_CERTFILE": "ssl_certfile",
        "SSL_KEYFILE": "ssl_keyfile",
        "SSL_CA_CERTS": "ssl_ca_certs",
        "SSL_KEYFILE_PASSWORD": "ssl_keyfile_password",
    }
    return {option: os.environ[env] for env, option in env_to_option.items() if os.getenv(env)}


def missing_render_modules() -> List[str]:
    return [name for name in RENDER_MODULES if importlib.util.find_spec(name) is None]


def main(argv: Optional[list] = None) -> None:
    ap = argparse.ArgumentParser(description="Serve the formation documents API.")
    ap.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    ap.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    ap.add_argument(
        "--reload",
        action="store_true",
        default=os.getenv("RELOAD", "false").lower() in TRUTHY,
    )
    ns = ap.parse_args(argv)

    log_level = os.getenv("LOG_LEVEL", "info").lower()
    logging.basicConfig(level=log_level.upper())

    missing = missing_render_modules()
    if missing:
        logger.warning(
            "PDF rendering disabled until dependencies are installed",
            extra={"missing": missing},
        )

    uvicorn.run(
        "formadb.main:app",
        host=ns.host,
        port=ns.port,
        reload=ns.reload,
        log_level=log_level,
        proxy_headers=True,
        forwarded_allow_ips=os.getenv("FORWARDED_ALLOW_IPS", "*"),
        **_ssl_options(),
    )


if __name__ == "__main__":
    main()
