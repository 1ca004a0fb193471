from cornshop.services.loyalty_service import (
    LoyaltyService,
    earn_rate,
    points_to_next_tier,
    tier_for,
)


def test_tiers():
    assert tier_for(0) == "Bronze"
    assert tier_for(999) == "Bronze"
    assert tier_for(1000) == "Silver"
    assert tier_for(2000) == "Gold"


def test_earn_rate():
    assert earn_rate(500) == 1.0
    assert earn_rate(1500) == 1.0
    assert earn_rate(2500) == 1.5


def test_points_to_next_tier():
    assert points_to_next_tier(250) == 750
    assert points_to_next_tier(1200) == 800
    assert points_to_next_tier(3000) == 0


def test_unknown_user_has_empty_account(db):
    account = LoyaltyService(db).get_account("nobody")
    assert account["points"] == 0
    assert account["tier"] == "Bronze"
    assert account["points_to_next_tier"] == 1000
