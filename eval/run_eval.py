import json
import os
import time
from pathlib import Path
from typing import Any, Dict, List
from collections import defaultdict

# Run with: PYTHONPATH=. python eval/run_eval.py
from app.config import get_settings
from llm.client import LLMClient, LLMError, classify_intent

PROMPTS_PATH = Path("eval/test_prompts.jsonl")
REPORT_PATH = Path("eval/report.json")


def load_jsonl(path: Path) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            rows.append(json.loads(line))
    return rows


# ---------------------------
# Metrics helpers
# ---------------------------
def _safe_div(a: float, b: float) -> float:
    return a / b if b else 0.0


def compute_classification_metrics(y_true: List[str], y_pred: List[str]) -> Dict[str, Any]:
    labels = sorted(set(y_true) | set(y_pred))

    cm: Dict[str, Dict[str, int]] = {t: {p: 0 for p in labels} for t in labels}
    for t, p in zip(y_true, y_pred):
        cm[t][p] += 1

    per_label: Dict[str, Any] = {}
    for lab in labels:
        tp = cm[lab][lab]
        fp = sum(cm[t][lab] for t in labels if t != lab)
        fn = sum(cm[lab][p] for p in labels if p != lab)

        prec = _safe_div(tp, tp + fp)
        rec = _safe_div(tp, tp + fn)
        per_label[lab] = {
            "precision": round(prec, 4),
            "recall": round(rec, 4),
            "f1": round(_safe_div(2 * prec * rec, prec + rec), 4),
            "support": sum(cm[lab].values()),
        }

    return {
        "labels": labels,
        "accuracy": round(_safe_div(sum(cm[l][l] for l in labels), len(y_true)), 4),
        "macro_f1": round(_safe_div(sum(per_label[l]["f1"] for l in labels), len(labels)), 4),
        "per_label": per_label,
        "confusion_matrix": cm,
    }


def evaluate_rows(llm: LLMClient, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    y_true: List[str] = []
    y_pred: List[str] = []
    failures: List[Dict[str, Any]] = []

    for row in rows:
        expected = row["expected_intent"]
        try:
            got = classify_intent(row["message"], llm).value
        except LLMError as e:
            got = "error"
            failures.append({"id": row["id"], "reason": f"classifier error: {e}"})
        else:
            if got != expected:
                failures.append({"id": row["id"], "reason": f"expected={expected} got={got}"})

        y_true.append(expected)
        y_pred.append(got)

    total = len(rows)
    passed = total - len(failures)
    return {
        "total": total,
        "passed": passed,
        "failed": len(failures),
        "pass_rate": round(_safe_div(passed * 100, total), 4),
        "metrics": compute_classification_metrics(y_true, y_pred) if rows else {},
        "failures": failures[:25],
    }


def main():
    # Deterministic by default
    os.environ.setdefault("LLM_MODE", "stub")

    llm = LLMClient(get_settings())
    prompts = load_jsonl(PROMPTS_PATH)
    run_id = str(int(time.time()))

    suites: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for row in prompts:
        suites[(row.get("suite") or "core").strip().lower()].append(row)

    overall = evaluate_rows(llm, prompts)

    print("\n=== Intent Eval Report (ALL) ===")
    print(f"Total: {overall['total']} | Passed: {overall['passed']} | Failed: {overall['failed']} | Pass rate: {overall['pass_rate']:.2f}%")
    if overall["metrics"]:
        print(f"Intent accuracy: {overall['metrics']['accuracy']} | macro F1: {overall['metrics']['macro_f1']}\n")

    for f in overall["failures"][:10]:
        print(f"  [{f['id']}] {f['reason']}")

    per_suite = {name: evaluate_rows(llm, rows) for name, rows in suites.items()}
    for name in sorted(per_suite):
        s = per_suite[name]
        print(f"=== Suite: {name} === {s['passed']}/{s['total']} ({s['pass_rate']:.2f}%)")

    REPORT_PATH.parent.mkdir(parents=True, exist_ok=True)
    REPORT_PATH.write_text(
        json.dumps(
            {"run_id": run_id, "mode": llm.mode, "overall": overall, "suites": per_suite},
            indent=2,
        ),
        encoding="utf-8",
    )
    print(f"Saved: {REPORT_PATH}")


if __name__ == "__main__":
    main()
