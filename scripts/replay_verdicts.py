#!/usr/bin/env python3
"""
Replay recorded raw model answers through the verdict normalizer, scorer and
feedback composer (no DB/API/model calls needed).
Usage: python scripts/replay_verdicts.py [examples/sample_model_responses.json]
"""

import json
import sys
from pathlib import Path

# Add project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from cqas.engine.composer import generate_negatives, generate_opportunities, generate_positives
from cqas.engine.normalizer import normalize_verdict
from cqas.engine.scoring import score_from_verdicts, score_label
from cqas.schemas.analysis import Rubric


def main():
    default_path = Path(__file__).resolve().parent.parent / "examples" / "sample_model_responses.json"
    samples_path = Path(sys.argv[1]) if len(sys.argv) > 1 else default_path

    if not samples_path.exists():
        print(f"Error: {samples_path} not found")
        sys.exit(1)

    with open(samples_path) as f:
        samples = json.load(f)

    verdicts = []
    for sample in samples:
        rubric = Rubric(**sample["rubric"])
        verdict = normalize_verdict(rubric, sample["raw"])
        verdicts.append(verdict)
        print(f"{rubric.name}: {verdict.evaluation.value}")
        print(f"    {verdict.comments}")

    score = score_from_verdicts(verdicts)
    report = {
        "score": score,
        "score_label": score_label(score),
        "positive": generate_positives(verdicts, score),
        "negative": generate_negatives(verdicts),
        "opportunities": generate_opportunities(verdicts),
    }
    print()
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
