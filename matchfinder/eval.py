# matchfinder/eval.py
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from loguru import logger

from . import config
from .config import SourceProduct
from .extractors.registry import get_extractor
from .selector import rank_candidates
from .utils.urls import canon_url, canon_urls

REQUIRED_COLUMNS = ["page_file", "marketplace", "source_title", "expected_url"]

# ---------- IO helpers ----------

def _read_any(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    ext = path.suffix.lower()
    if ext in [".xlsx", ".xls"]:
        df = pd.read_excel(path)
    else:
        df = pd.read_csv(path, encoding="utf-8")
    cols = {c.lower(): c for c in df.columns}
    missing = [c for c in REQUIRED_COLUMNS if c not in cols]
    if missing:
        raise ValueError(f"Expected columns {REQUIRED_COLUMNS}. Found: {list(df.columns)}")
    return df.rename(columns={cols[c]: c for c in cols})


def _opt_str(v) -> Optional[str]:
    if v is None or (isinstance(v, float) and pd.isna(v)):
        return None
    s = str(v).strip()
    return s or None


def _opt_float(v) -> Optional[float]:
    if v is None or pd.isna(v):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None

# ---------- metrics (compare canonical URLs) ----------

def hit_at_k(expected: str, ranked_urls: List[str], k: int) -> float:
    """1.0 if the expected listing is in the top-k, else 0.0."""
    target = canon_url(expected)
    if not target:
        return 0.0
    return 1.0 if target in canon_urls(ranked_urls)[:k] else 0.0


def mean_hit_at_k(gold: Dict[str, str], preds: Dict[str, List[str]], k: int) -> float:
    """
    gold: case id -> expected URL
    preds: case id -> URLs in rank order
    Cases without predictions count as misses.
    """
    if not gold:
        return 0.0
    total = sum(hit_at_k(url, preds.get(cid, []), k) for cid, url in gold.items())
    return total / float(len(gold))

# ---------- running the selector over saved pages ----------

def rank_saved_page(row: pd.Series, pages_dir: Path) -> List[str]:
    page_path = pages_dir / str(row["page_file"])
    if not page_path.exists():
        logger.warning("Missing saved page {}", page_path)
        return []
    html = page_path.read_text(encoding="utf-8", errors="ignore")
    source = SourceProduct(
        title=str(row["source_title"]),
        brand=_opt_str(row.get("source_brand")),
        price=_opt_float(row.get("source_price")),
    )
    candidates = get_extractor(str(row["marketplace"])).extract(html)
    return [c.url for c in rank_candidates(source, candidates) if c.url]


def evaluate(labels: pd.DataFrame, pages_dir: Path, ks=(1, 3, 5)) -> Dict[int, float]:
    gold: Dict[str, str] = {}
    preds: Dict[str, List[str]] = {}
    for i, row in labels.iterrows():
        cid = f"{row['page_file']}#{i}"
        gold[cid] = str(row["expected_url"])
        preds[cid] = rank_saved_page(row, pages_dir)
    return {k: mean_hit_at_k(gold, preds, k) for k in ks}

# ---------- CLI ----------

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--labels", type=Path, default=config.EVAL_LABELS_PATH,
                    help="CSV/XLSX with page_file, marketplace, source_title, expected_url")
    ap.add_argument("--pages_dir", type=Path, default=config.EVAL_PAGES_DIR,
                    help="Directory of saved search-result pages")
    ap.add_argument("--k", type=int, nargs="+", default=[1, 3, 5])
    args = ap.parse_args()

    labels = _read_any(args.labels)
    scores = evaluate(labels, args.pages_dir, ks=tuple(args.k))
    logger.info("Evaluated {} labelled pages", len(labels))
    for k in args.k:
        print(f"Hit@{k}: {scores[k]:.4f}")


if __name__ == "__main__":
    main()
