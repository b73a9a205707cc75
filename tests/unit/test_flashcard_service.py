"""
Unit tests for FlashcardService.
"""

from datetime import timedelta

import pytest

from src.srs import CardNotFoundError, FlashcardService, PersistenceError, Rating, ReviewSession


class TestCardManagement:
    @pytest.mark.asyncio
    async def test_create_card_is_due_now(self, service, store, clock):
        card = await service.create_card("What is LTP?", "Long-term potentiation", "neuroscience")

        assert card.next_review == clock.now()
        assert card.ease_factor == 2.5
        assert card.interval == 1
        assert await store.get_flashcards() == [card]
        assert await service.due_cards() == [card]

    @pytest.mark.asyncio
    async def test_create_rejects_blank_front(self, service, store):
        with pytest.raises(ValueError):
            await service.create_card("  ", "answer")

        assert await store.get_flashcards() == []

    @pytest.mark.asyncio
    async def test_create_surfaces_persistence_errors(self, service, store):
        store.fail_card_saves = 1

        with pytest.raises(PersistenceError):
            await service.create_card("q", "a")

    @pytest.mark.asyncio
    async def test_get_card(self, service):
        card = await service.create_card("q", "a")

        assert await service.get_card(card.id) == card
        with pytest.raises(CardNotFoundError, match="missing"):
            await service.get_card("missing")

    @pytest.mark.asyncio
    async def test_update_card_keeps_schedule(self, make_card, make_store, scheduler):
        card = make_card(interval=9, ease_factor=2.2, repetitions=3)
        store = make_store([card])
        service = FlashcardService(store, scheduler)

        updated = await service.update_card(card.id, back="Edited", category="physics")

        assert updated.back == "Edited"
        assert updated.category == "physics"
        assert (updated.interval, updated.ease_factor, updated.next_review) == (9, 2.2, card.next_review)
        assert await store.get_flashcards() == [updated]

    @pytest.mark.asyncio
    async def test_update_unknown_card(self, service):
        with pytest.raises(CardNotFoundError):
            await service.update_card("nope", front="x")

    @pytest.mark.asyncio
    async def test_delete_card(self, service, store):
        keep = await service.create_card("keep", "a")
        drop = await service.create_card("drop", "b")

        await service.delete_card(drop.id)

        assert [c.id for c in await store.get_flashcards()] == [keep.id]
        with pytest.raises(CardNotFoundError):
            await service.delete_card(drop.id)

    @pytest.mark.asyncio
    async def test_list_cards_by_category(self, service, clock):
        a = await service.create_card("a", "a", "biology")
        clock.advance(minutes=1)
        b = await service.create_card("b", "b", "chemistry")
        clock.advance(minutes=1)
        c = await service.create_card("c", "c", "biology")

        assert [x.id for x in await service.list_cards()] == [a.id, b.id, c.id]
        assert [x.id for x in await service.list_cards("biology")] == [a.id, c.id]
        assert await service.list_cards("history") == []


class TestQueriesAndStats:
    @pytest.mark.asyncio
    async def test_new_session_shares_store(self, service):
        session = service.new_session()

        assert isinstance(session, ReviewSession)
        assert session.store is service.store

    @pytest.mark.asyncio
    async def test_recommended_session_size(self, service):
        assert await service.recommended_session_size() == 0

        for i in range(12):
            await service.create_card(f"q{i}", f"a{i}")

        assert await service.cognitive_load() == 1.0
        assert await service.recommended_session_size() == 10

    @pytest.mark.asyncio
    async def test_stats_for_empty_deck(self, service):
        stats = await service.get_stats()

        assert stats.total_cards == 0
        assert stats.due_cards == 0
        assert stats.average_accuracy is None
        assert stats.cognitive_load == 1.0
        assert stats.recommended_session_size == 0

    @pytest.mark.asyncio
    async def test_stats_after_a_session(self, service, store, clock, make_card, make_session):
        mastered = make_card(interval=30, repetitions=5, reviews=5, next_review=clock.now() + timedelta(days=20))
        await store.save_flashcards([mastered])
        await store.save_study_session(make_session(accuracy=0.5, cards_studied=4))
        for i in range(3):
            await service.create_card(f"q{i}", f"a{i}", "biology")

        session = service.new_session()
        await session.start()
        for rating in (Rating.GOOD, Rating.AGAIN):
            card = session.reveal_answer()
            await session.rate(rating, card_id=card.id)
        await session.abort()

        stats = await service.get_stats()

        assert stats.total_cards == 4
        assert stats.due_cards == 1
        assert stats.new_cards == 1
        assert stats.mastered_cards == 1
        assert stats.sessions_completed == 1
        assert stats.cards_studied == 6
        assert stats.average_accuracy == pytest.approx(0.5)
        assert stats.categories == {"general": 1, "biology": 3}

    @pytest.mark.asyncio
    async def test_recommended_size_fits_available_time(self, service):
        for i in range(12):
            await service.create_card(f"q{i}", f"a{i}")

        assert await service.recommended_session_size(available_minutes=3) == 2
        assert await service.recommended_session_size(available_minutes=60) == 10

    @pytest.mark.asyncio
    async def test_learning_insights(self, service, store, scheduler, make_card, make_session):
        await store.save_flashcards(
            [
                make_card(ease_factor=1.3, reviews=4, lapses=2, category="pharmacology"),
                make_card(ease_factor=2.6, reviews=4, category="anatomy"),
            ]
        )
        await store.save_study_session(make_session(accuracy=0.5, cards_studied=4))

        insights = await service.analyze_learning_patterns()
        stats = await service.get_stats()

        assert insights.average_retention == pytest.approx(0.5)
        assert insights.difficult_categories == ["pharmacology"]
        assert insights.suggestion == scheduler.SUGGESTION_LOW
        assert stats.insights == insights
        assert stats.to_dict()["insights"]["difficult_categories"] == ["pharmacology"]
