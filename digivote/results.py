import datetime
import io
from typing import Any, Dict, List, Optional

import pandas as pd

from .elections import is_declared, parse_timestamp

RESULT_COLUMNS = ["candidateId", "name", "partyName", "votes", "votePercentage"]

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def candidate_table(candidates: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(candidates or [], columns=RESULT_COLUMNS)
    df["partyName"] = df["partyName"].fillna("Independent")
    df["votes"] = pd.to_numeric(df["votes"], errors="coerce").fillna(0).astype(int)
    df["votePercentage"] = pd.to_numeric(df["votePercentage"], errors="coerce").fillna(0.0).round(2)
    return df.sort_values("votes", ascending=False, kind="stable").reset_index(drop=True)


def party_totals(candidates: List[Dict[str, Any]]) -> pd.DataFrame:
    """Votes per party, highest first."""
    df = candidate_table(candidates)
    if df.empty:
        return pd.DataFrame(columns=["partyName", "votes"])
    df["partyName"] = df["partyName"].fillna("Independent")
    totals = df.groupby("partyName", as_index=False)["votes"].sum()
    return totals.sort_values("votes", ascending=False, kind="stable").reset_index(drop=True)


def winner(candidates: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    df = candidate_table(candidates)
    if df.empty or int(df.iloc[0]["votes"]) == 0:
        return None
    return df.iloc[0].to_dict()


def results_csv(election: Dict[str, Any], candidates: List[Dict[str, Any]]) -> io.BytesIO:
    df = candidate_table(candidates)
    df.insert(0, "rank", range(1, len(df) + 1))
    df.insert(0, "election", election.get("title") or election.get("_id"))
    buf = io.BytesIO()
    buf.write(df.to_csv(index=False).encode("utf-8"))
    buf.seek(0)
    return buf


def csv_filename(election: Dict[str, Any]) -> str:
    title = "".join(c if c.isalnum() else "_" for c in (election.get("title") or "election"))
    return f"{title.strip('_') or 'election'}_results.csv"


# -------------------------
# Voter results list
# -------------------------

def _bucket(election: Dict[str, Any]) -> int:
    if is_declared(election):
        return 0
    if election.get("status") == "completed":
        return 1
    return 2


def _when(value) -> datetime.datetime:
    return parse_timestamp(value) or _EPOCH


def order_published(elections: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Published (latest declaration first), then completed, then upcoming (earliest first)."""
    published = [e for e in elections if _bucket(e) == 0]
    published.sort(key=lambda e: _when((e.get("results") or {}).get("declaredAt")), reverse=True)
    rest = [e for e in elections if _bucket(e) != 0]
    rest.sort(key=lambda e: (_bucket(e), _when(e.get("resultDeclarationDate"))))
    return published + rest


def placeholder(election: Dict[str, Any]) -> Dict[str, Any]:
    """Detail shown for an election whose results are not published yet."""
    return {"election": election, "candidates": [], "is_upcoming": True,
            "declaration_date": election.get("resultDeclarationDate")}
