import asyncio

from trip_planner.models.place_models import Place, PlaceRatingPatch
from trip_planner.planner.sessions import EditorSessionRegistry
from trip_planner.services.realtime_service import PlaceRatingFeed, merge_rating_patch


PLACES = [
    Place(place_id="p1", place_name="Gyeongbokgung", average_rating=4.0, review_count=3, favorite_count=7),
    Place(place_id="p2", place_name="Namsan Tower", average_rating=3.0),
]


def test_merge_touches_only_matching_place_aggregates():
    merged = merge_rating_patch(PLACES, PlaceRatingPatch(place_id="p1", average_rating=4.7))

    assert merged[0].average_rating == 4.7
    assert merged[0].review_count == 3
    assert merged[0].place_name == "Gyeongbokgung"
    assert merged[1] == PLACES[1]
    # input list is left alone
    assert PLACES[0].average_rating == 4.0


def test_merge_unknown_place_changes_nothing():
    assert merge_rating_patch(PLACES, PlaceRatingPatch(place_id="zz", review_count=1)) == PLACES


def test_unsubscribe_stops_delivery():
    feed = PlaceRatingFeed()
    received = []
    unsubscribe = feed.subscribe(received.append)

    feed.publish(PlaceRatingPatch(place_id="p1", favorite_count=1))
    unsubscribe()
    feed.publish(PlaceRatingPatch(place_id="p1", favorite_count=2))

    assert [p.favorite_count for p in received] == [1]
    assert feed.subscriber_count == 0


def test_failing_subscriber_does_not_block_others():
    feed = PlaceRatingFeed()
    received = []

    def broken(patch):
        raise RuntimeError("boom")

    feed.subscribe(broken)
    feed.subscribe(received.append)
    feed.publish(PlaceRatingPatch(place_id="p1", average_rating=5.0))

    assert len(received) == 1


def test_open_sessions_follow_the_feed(place_service, gateway, feed):
    from trip_planner.planner.editor import PlannerEditor

    registry = EditorSessionRegistry(feed=feed)
    editor = PlannerEditor("user-1", place_service, gateway, "2025-06-01", "2025-06-02")
    editor.load()
    registry.add(editor)

    place_service.update_rating("p2", {"average_rating": 1.5})
    assert next(p for p in editor.places if p.place_id == "p2").average_rating == 1.5

    registry.discard(editor.session_id)
    place_service.update_rating("p2", {"average_rating": 2.5})
    assert next(p for p in editor.places if p.place_id == "p2").average_rating == 1.5
    assert feed.subscriber_count == 0


def test_full_client_queue_drops_extra_patches():
    feed = PlaceRatingFeed()

    async def listen():
        queue = asyncio.Queue(maxsize=1)
        unsubscribe = feed.subscribe_queue(asyncio.get_running_loop(), queue)
        for count in (1, 2, 3):
            feed.publish(PlaceRatingPatch(place_id="p1", favorite_count=count))
        await asyncio.sleep(0)
        unsubscribe()
        kept = queue.get_nowait()
        return kept, queue.empty()

    kept, drained = asyncio.run(listen())

    assert kept.favorite_count == 1
    assert drained
