"""Run the API with uvicorn: python -m personalization_api"""

import uvicorn

from .config import get_config


def main() -> None:
    config = get_config()
    uvicorn.run("personalization_api.app:app", host=config.host, port=config.port)


if __name__ == "__main__":
    main()
