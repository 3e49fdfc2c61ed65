from datetime import date, datetime

import pandas as pd
import pytest

from leads.data import parse_feed
from leads.filters import filter_by_date_range
from leads.preferences import MemoryStore, PreferenceStore

FEED_HEADER = (
    "SPOC Name,Customer Name,Mobile Number,Company,State,Source of come,"
    "Unique ID,Amount Received,Transaction Mode,Filing Type,Timestamp"
)

FEED_TEXT = "\n".join(
    [
        FEED_HEADER,
        "Asha,Cust 1,9000000001,Acme,KA,Google,U1,1000,UPI,GST,2024-05-30 10:00:00",
        "Asha,Cust 2,9000000002,Acme,KA,Google,U2,1500,UPI,ITR,2024-06-01 08:10:00",
        "Ravi,Cust 3,9000000003,Beta,TN,Facebook,U3,2000,Cash,GST,2024-06-01 08:40:00",
        "Ravi,Cust 4,9000000004,Beta,TN,Facebook,U4,2500,UPI,GST,2024-06-01 13:30:00",
        "Meena,Cust 5,9000000005,Gamma,KL,Google,U5,3000,Card,ITR,2024-06-02 09:05:00",
        "Ravi,Cust 6,9000000006,Delta,KA,Referral,U6,3500,UPI,GST,2024-06-03 10:00:00",
        "Asha,Cust 7,9000000007,Acme,KA,Google,U7,4000,Cash,ITR,2024-06-03 11:30:00",
        "Asha,Cust 8,9000000008,Acme,KA,Google,U8,4500,UPI,GST,2024-06-03 15:00:00",
        "Kiran,Cust 9,9000000009,Omega,AP,Google,U9,5000,UPI,GST,",
    ]
)

NOW = datetime(2024, 6, 3, 12, 0)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def records() -> pd.DataFrame:
    return parse_feed(FEED_TEXT)


@pytest.fixture
def june_records(records: pd.DataFrame) -> pd.DataFrame:
    return filter_by_date_range(records, date(2024, 6, 1), date(2024, 6, 3))


@pytest.fixture
def kv_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def preferences(kv_store: MemoryStore) -> PreferenceStore:
    return PreferenceStore(kv_store, clock=lambda: NOW)


@pytest.fixture
def ctx(records, june_records, preferences, now):
    return {
        "all_records": records,
        "filtered_records": june_records,
        "preferences": preferences,
        "now": now,
    }
