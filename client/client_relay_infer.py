import json
import logging
import os
from pathlib import Path

from client.session import SUPPORTED_EXTS, UploadSession

IMAGE_FOLDER = Path(os.getenv("RELAY_IMAGE_FOLDER", "./client/images"))
OUTPUT_FILE = Path(os.getenv("RELAY_OUTPUT_FILE", "./relay_result.json"))


def main():
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

    if not IMAGE_FOLDER.is_dir():
        print(f"Image folder not found: {IMAGE_FOLDER}")
        return

    image_paths = sorted(p for p in IMAGE_FOLDER.iterdir() if p.suffix.lower() in SUPPORTED_EXTS)
    if not image_paths:
        print(f"No images in {IMAGE_FOLDER}.")
        return

    results = []
    for img_path in image_paths:
        session = UploadSession()
        session.drop([img_path])
        if session.recipes:
            session.select_recipe(0)

        print(f"--- {img_path.name}")
        print(session.render())

        results.append({
            "image": img_path.name,
            "recipes": session.recipes,
            "error": session.error,
            "no_food": session.is_no_food_error,
        })

    with open(OUTPUT_FILE, "w", encoding="utf-8") as f:
        json.dump(results, f, indent=2, ensure_ascii=False)

    print(f"Results saved to {OUTPUT_FILE.resolve()}")


if __name__ == "__main__":
    main()
