from datetime import datetime

from loancrm.database.predicates import And, Eq, MatchAll, Or, Range, Regex, all_of
from loancrm.schemas.customer_schema import CustomerStatusEnum


def test_and_drops_match_all_and_unwraps_single_clause():
    assert all_of([]) == MatchAll()
    assert all_of([None, MatchAll()]) == MatchAll()
    assert And.of(MatchAll(), Eq("status", "pending")) == Eq("status", "pending")


def test_and_flattens_nested_clauses():
    predicate = Eq("a", 1) & (Eq("b", 2) & Eq("c", 3))
    assert isinstance(predicate, And)
    assert len(predicate.clauses) == 3
    assert predicate.to_mongo() == {"a": 1, "b": 2, "c": 3}


def test_and_falls_back_to_explicit_and_on_key_clash():
    predicate = Range("loanamount", gte=10) & Range("loanamount", lte=5)
    assert predicate.to_mongo() == {"$and": [{"loanamount": {"$gte": 10}}, {"loanamount": {"$lte": 5}}]}
    assert not predicate.matches({"loanamount": 7})


def test_or_to_mongo_and_matches():
    predicate = Eq("email", "x@example.com") | Eq("phone", "1")
    assert predicate.to_mongo() == {"$or": [{"email": "x@example.com"}, {"phone": "1"}]}
    assert predicate.matches({"email": "y@example.com", "phone": "1"})
    assert not predicate.matches({"email": "y@example.com", "phone": "2"})
    assert isinstance(predicate, Or)


def test_eq_compares_enum_by_value():
    assert Eq("status", "approved").matches({"status": CustomerStatusEnum.approved})
    assert Eq("status", CustomerStatusEnum.rejected).to_mongo() == {"status": CustomerStatusEnum.rejected}


def test_range_skips_missing_and_incomparable_values():
    predicate = Range("createdAt", gte=datetime(2025, 1, 1))
    assert not predicate.matches({})
    assert not predicate.matches({"createdAt": "yesterday"})
    assert predicate.matches({"createdAt": datetime(2025, 1, 1)})


def test_regex_case_insensitive_by_default():
    predicate = Regex("firstname", "ash")
    assert predicate.to_mongo() == {"firstname": {"$regex": "ash", "$options": "i"}}
    assert predicate.matches({"firstname": "ASHA"})
    assert not Regex("firstname", "ash", ignore_case=False).matches({"firstname": "ASHA"})
