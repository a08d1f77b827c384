"""
Example data generator for the Runner Log Dashboard.

Writes a synthetic running log with realistic mileage for a small
club: ``date, person, miles run`` plus a free-text ``notes`` column.
Roughly 3% of rows are deliberately unusable (blank person, or a
non-numeric miles value) and some notes contain commas and quotes, so
the example exercises row skipping and CSV quoting.
"""

import csv
import os
import random
from datetime import date, timedelta

# Runner → (typical miles, spread)
_RUNNERS = {
    'Ann':    (5.5, 1.5),
    'Bo':     (3.0, 1.0),
    'Carmen': (8.0, 2.5),
    'Dev':    (4.2, 1.2),
    'Emi':    (6.5, 2.0),
    'Farid':  (2.5, 0.8),
}

_NOTES = [
    "", "", "", "easy pace", "tempo, felt good", 'hill repeats "x6"',
    "recovery", "long run, humid", "track session",
]


def generate_example_csv(output_dir: str, *, days: int = 90,
                         start: date = date(2024, 1, 1),
                         seed: int = 42) -> str:
    """Generate ``example_runs.csv`` in *output_dir* and return its path."""
    os.makedirs(output_dir, exist_ok=True)
    rng = random.Random(seed)
    path = os.path.join(output_dir, "example_runs.csv")

    with open(path, "w", encoding="utf-8", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(["Date", "Person", "Miles Run", "Notes"])
        for offset in range(days):
            day = (start + timedelta(days=offset)).isoformat()
            for name, (mean, spread) in _RUNNERS.items():
                # Not everyone runs every day
                if rng.random() < 0.35:
                    continue
                miles = max(0.5, rng.gauss(mean, spread))
                person, miles_text = name, f"{miles:.2f}"
                roll = rng.random()
                if roll < 0.015:
                    person = ""
                elif roll < 0.03:
                    miles_text = "n/a"
                writer.writerow([day, person, miles_text, rng.choice(_NOTES)])

    return path
