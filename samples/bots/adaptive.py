"""Picks the smallest value nobody else chose last round."""

import sys


def main() -> None:
    taken: set[int] = set()
    print("ready", flush=True)
    for line in sys.stdin:
        command = line.strip()
        if command == "game":
            choice = 1
            while choice in taken:
                choice += 1
            print(choice, flush=True)
        elif command == "end":
            return
        else:
            taken = {int(item) for item in command.split()}


if __name__ == "__main__":
    main()
