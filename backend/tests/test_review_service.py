"""
Wayfarer Backend — Review and User Service Tests
==================================================

What:  Review CRUD with the tour rating aggregate, and user deletion cleanup.

What we test:
    ✅ Creating reviews recomputes ratingsQuantity / ratingsAverage (rounded)
    ✅ Updating and deleting reviews keeps the aggregate in step
    ✅ The last review removed resets the average to 4.5
    ✅ Reviews need an existing, visible tour and an existing user
    ✅ Deleting a user removes their reviews and guide assignments
"""

import uuid

import pytest
from sqlalchemy import func, select

from app.exceptions import NotFoundError, ValidationError
from app.models.review import Review
from app.models.tour import Tour, tour_guides
from app.services.review_service import ReviewService
from app.services.tour_service import TourService
from app.services.user_service import UserService
from conftest import tour_payload


@pytest.fixture
def reviews():
    return ReviewService()


@pytest.fixture
def tours():
    return TourService()


async def _tour_ratings(db, tour_id):
    tour = await db.get(Tour, uuid.UUID(tour_id))
    return tour.ratings_quantity, tour.ratings_average


class TestRatingAggregate:

    @pytest.mark.asyncio
    async def test_create_updates_tour_ratings(self, reviews, tours, db_session, make_user):
        tour = await tours.create_tour(db_session, tour_payload())
        alice = await make_user("Alice Walker", role="user")
        bob = await make_user("Bob Marley", role="user")
        carol = await make_user("Carol King", role="user")

        for user, rating in ((alice, 5), (bob, 4), (carol, 5)):
            await reviews.create_review(
                db_session,
                {"review": "Lovely", "rating": rating, "user": str(user.id)},
                tour_id=tour["id"],
            )

        # (5 + 4 + 5) / 3 = 4.666… → 4.7
        assert await _tour_ratings(db_session, tour["id"]) == (3, 4.7)

    @pytest.mark.asyncio
    async def test_average_halfway_rounds_up(self, reviews, tours, db_session, make_user):
        tour = await tours.create_tour(db_session, tour_payload())
        names = ("Alice Walker", "Bob Marley", "Carol King", "Dave Grohl")
        for name, rating in zip(names, (4, 4, 4, 5)):
            user = await make_user(name, role="user")
            await reviews.create_review(
                db_session,
                {"review": "Lovely", "rating": rating, "user": str(user.id)},
                tour_id=tour["id"],
            )

        # (4 + 4 + 4 + 5) / 4 = 4.25 → 4.3
        assert await _tour_ratings(db_session, tour["id"]) == (4, 4.3)

    @pytest.mark.asyncio
    async def test_update_and_delete_recompute(self, reviews, tours, db_session, make_user):
        tour = await tours.create_tour(db_session, tour_payload())
        alice = await make_user("Alice Walker", role="user")
        bob = await make_user("Bob Marley", role="user")
        first = await reviews.create_review(
            db_session, {"review": "Fine", "rating": 2, "user": str(alice.id), "tour": tour["id"]}
        )
        await reviews.create_review(
            db_session, {"review": "Great", "rating": 4, "user": str(bob.id), "tour": tour["id"]}
        )
        assert await _tour_ratings(db_session, tour["id"]) == (2, 3.0)

        await reviews.update_review(db_session, first["id"], {"rating": 5})
        assert await _tour_ratings(db_session, tour["id"]) == (2, 4.5)

        await reviews.delete_review(db_session, first["id"])
        assert await _tour_ratings(db_session, tour["id"]) == (1, 4.0)

    @pytest.mark.asyncio
    async def test_last_review_removed_resets_default(self, reviews, tours, db_session, make_user):
        tour = await tours.create_tour(db_session, tour_payload())
        alice = await make_user("Alice Walker", role="user")
        review = await reviews.create_review(
            db_session, {"review": "Meh", "rating": 1, "user": str(alice.id)}, tour_id=tour["id"]
        )

        await reviews.delete_review(db_session, review["id"])
        assert await _tour_ratings(db_session, tour["id"]) == (0, 4.5)


class TestReviewRules:

    @pytest.mark.asyncio
    async def test_review_needs_a_tour(self, reviews, db_session, make_user):
        alice = await make_user("Alice Walker", role="user")
        with pytest.raises(ValidationError) as exc_info:
            await reviews.create_review(
                db_session, {"review": "Nice", "rating": 4, "user": str(alice.id)}
            )
        assert "Review must belong to a tour." in exc_info.value.message

    @pytest.mark.asyncio
    async def test_secret_tour_cannot_be_reviewed(self, reviews, tours, db_session, make_user):
        secret = await tours.create_tour(
            db_session, tour_payload(name="The Secret Summit", secretTour=True)
        )
        alice = await make_user("Alice Walker", role="user")
        with pytest.raises(NotFoundError):
            await reviews.create_review(
                db_session,
                {"review": "Nice", "rating": 4, "user": str(alice.id)},
                tour_id=secret["id"],
            )

    @pytest.mark.asyncio
    async def test_unknown_user_rejected(self, reviews, tours, db_session):
        tour = await tours.create_tour(db_session, tour_payload())
        with pytest.raises(NotFoundError) as exc_info:
            await reviews.create_review(
                db_session,
                {"review": "Nice", "rating": 4, "user": str(uuid.uuid4())},
                tour_id=tour["id"],
            )
        assert exc_info.value.context["resource"] == "user"

    @pytest.mark.asyncio
    async def test_review_shows_author_summary(self, reviews, tours, db_session, make_user):
        tour = await tours.create_tour(db_session, tour_payload())
        alice = await make_user("Alice Walker", role="user")
        review = await reviews.create_review(
            db_session, {"review": "Nice", "rating": 4, "user": str(alice.id)}, tour_id=tour["id"]
        )
        assert review["user"] == {"id": str(alice.id), "name": "Alice Walker", "photo": "default.jpg"}
        assert review["tourId"] == tour["id"]

    @pytest.mark.asyncio
    async def test_list_scoped_to_tour(self, reviews, tours, db_session, make_user):
        hiker = await tours.create_tour(db_session, tour_payload())
        sea = await tours.create_tour(db_session, tour_payload(name="The Sea Explorer"))
        alice = await make_user("Alice Walker", role="user")
        await reviews.create_review(
            db_session, {"review": "A", "rating": 4, "user": str(alice.id)}, tour_id=hiker["id"]
        )
        await reviews.create_review(
            db_session, {"review": "B", "rating": 5, "user": str(alice.id)}, tour_id=sea["id"]
        )

        scoped = await reviews.list_reviews(db_session, {}, tour_id=sea["id"])
        assert [r["review"] for r in scoped] == ["B"]
        assert len(await reviews.list_reviews(db_session, {})) == 2


class TestDeleteUser:

    @pytest.mark.asyncio
    async def test_delete_user_cleans_up(self, reviews, tours, db_session, make_user):
        guide = await make_user("Steve Miller", role="guide")
        tour = await tours.create_tour(db_session, tour_payload(guides=[str(guide.id)]))
        await reviews.create_review(
            db_session, {"review": "Self-review", "rating": 5, "user": str(guide.id)},
            tour_id=tour["id"],
        )

        await UserService().delete_user(db_session, str(guide.id))

        assert await db_session.scalar(select(func.count(Review.id))) == 0
        assert await db_session.scalar(select(func.count()).select_from(tour_guides)) == 0
        assert await _tour_ratings(db_session, tour["id"]) == (0, 4.5)

    @pytest.mark.asyncio
    async def test_create_user_lowercases_email(self, db_session):
        user = await UserService().create_user(
            db_session, {"name": "Jonas Schmedtmann", "email": "Jonas@Example.IO"}
        )
        assert user["email"] == "jonas@example.io"
        assert user["role"] == "user"
        assert "version" not in user
