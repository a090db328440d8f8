import argparse
import json
import os

from easyblob.models.config import StorageConfig


def build_config_schema() -> dict:
    schema = StorageConfig.model_json_schema()
    schema["title"] = "EasyBlob storage config"
    return schema


def save_config_schema(output_file: str) -> None:
    schema = build_config_schema()
    output_dir = os.path.dirname(output_file)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output_file, "w") as f:
        json.dump(schema, f, indent=2)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--output",
        default=os.path.join("schemas", "easyblob_config_schema.json"),
        help="Where to write the JSON schema",
    )
    args = parser.parse_args()
    save_config_schema(args.output)
