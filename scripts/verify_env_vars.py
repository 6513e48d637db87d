"""
Compare the settings the app reads with the keys documented in .env.example.

Usage:
  python scripts/verify_env_vars.py [path/to/.env]
"""
import sys
from pathlib import Path

from dotenv import dotenv_values

from swapstation.config import Settings


def settings_env_vars():
    """Environment variable names declared on Settings."""
    return sorted(field.alias for field in Settings.model_fields.values() if field.alias)


def verify_env_file(env_path: Path):
    documented = set(dotenv_values(env_path).keys())
    declared = set(settings_env_vars())
    missing_in_file = sorted(declared - documented)
    unknown_in_file = sorted(documented - declared)

    print("=== ENV VAR VERIFICATION ===")
    print(f"Settings declares: {len(declared)} vars")
    print(f"{env_path} has: {len(documented)} vars")
    print("")
    if missing_in_file:
        print(f"MISSING IN {env_path.name} ({len(missing_in_file)}):")
        for v in missing_in_file:
            print(f"  - {v}")
    else:
        print(f"No missing vars in {env_path.name}.")
    print("")
    if unknown_in_file:
        print(f"UNKNOWN TO SETTINGS ({len(unknown_in_file)}):")
        for v in unknown_in_file:
            print(f"  - {v}")
    else:
        print("No unknown vars.")
    return not missing_in_file and not unknown_in_file


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / ".env.example"
    sys.exit(0 if verify_env_file(path) else 1)
