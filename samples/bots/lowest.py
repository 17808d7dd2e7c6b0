"""Always submits 1."""

import sys


def main() -> None:
    print("ready", flush=True)
    for line in sys.stdin:
        command = line.strip()
        if command == "game":
            print(1, flush=True)
        elif command == "end":
            return


if __name__ == "__main__":
    main()
