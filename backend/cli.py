from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from api_client import ApiClient, ApiError
from autocomplete import Autocomplete
from event_normalizer import (
    EventDetail,
    EventResults,
    describe_event,
    facebook_share_url,
    format_event_date,
    twitter_share_url,
)
from event_search import EventSearch, SearchForm
from favorites_cache import FavoritesCache, FavoritesView
from geo_lookup import GeocodeNotFound, GeocodeUpstreamError
from search_query import CATEGORIES
from spotify_client import first_artist, summarize_artist

logger = logging.getLogger(__name__)

HELP = """Commands:
  search            new search (keyword, category, distance, location or 'auto')
  list              show the last results again
  detail <n>        event details for result n
  fav <n>           toggle favorite for result n
  fav               toggle favorite for the event last opened with 'detail'
  favorites         show saved favorites
  unfav <n>         remove favorite n
  clear             clear the search form and results
  exit              quit"""


def _prompt(label: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    value = input(f"{label}{suffix}: ").strip()
    return value or default


def _print_events(results: EventResults, favorites: FavoritesView) -> None:
    if not results:
        print("\nNo results available.")
        return
    print()
    for i, ev in enumerate(results, start=1):
        heart = "*" if ev.id in favorites else " "
        when = format_event_date(ev.local_date, ev.local_time)
        print(f"{i:>2}.{heart} {when} | {ev.name} | {ev.category_name} | {ev.venue_name}")


def _print_favorites(favorites: FavoritesView) -> None:
    if not favorites:
        print("\nNo favorite events yet.")
        return
    print()
    for i, fav in enumerate(favorites.values(), start=1):
        print(f"{i:>2}. {format_event_date(fav.date, fav.time)} | {fav.name} | {fav.category} | {fav.venue}")


def load_spotify_artists(api: ApiClient, detail: EventDetail) -> list[dict[str, Any]]:
    """Spotify panel for music events: first search hit per performer, with up to 3 albums."""
    if not detail.is_music:
        return []
    artists = []
    for name in detail.artists:
        try:
            artist = first_artist(api.spotify_artist(name))
            if artist is None:
                continue
            albums = api.artist_albums(str(artist.get("id") or ""))
        except ApiError as e:
            logger.warning("Spotify lookup for %r failed: %s", name, e)
            continue
        artists.append(summarize_artist(artist, albums))
    return artists


def _print_detail(detail: EventDetail, artists: list[dict[str, Any]], is_favorite: bool) -> None:
    print(f"\n{detail.name}{'  (favorite)' if is_favorite else ''}")
    print(f"  Date:          {format_event_date(detail.local_date, detail.local_time)}")
    print(f"  Artist/Team:   {detail.artist_names}")
    print(f"  Venue:         {detail.venue_name}")
    print(f"  Address:       {detail.venue_address}")
    print(f"  Genres:        {detail.genres}")
    print(f"  Price range:   {detail.price_range}")
    print(f"  Ticket status: {detail.ticket_status}")
    if detail.buy_url:
        print(f"  Buy tickets:   {detail.buy_url}")
        print(f"  Share:         {facebook_share_url(detail)}")
        print(f"                 {twitter_share_url(detail)}")
    if detail.seatmap_url:
        print(f"  Seat map:      {detail.seatmap_url}")
    if detail.venue_map_url:
        print(f"  Map:           {detail.venue_map_url}")
    for artist in artists:
        print(f"\n  {artist['name']}  followers={artist['followers']:,} popularity={artist['popularity']}")
        if artist["spotifyUrl"]:
            print(f"    {artist['spotifyUrl']}")
        for album in artist["albums"]:
            print(f"    - {album['name']}")


class EventFinderCli:
    def __init__(self, api: Optional[ApiClient] = None):
        self.api = api or ApiClient()
        self.search = EventSearch(self.api)
        self.favorites = FavoritesCache(self.api)
        self.autocomplete = Autocomplete(self.api.suggest, debounce=None)
        self._favorites_view: FavoritesView = {}
        self.last_form: Optional[SearchForm] = None
        self.opened: Optional[EventDetail] = None
        self.favorites.subscribe(self._on_favorites)

    def _on_favorites(self, view: FavoritesView) -> None:
        self._favorites_view = view

    def _result(self, arg: str):
        try:
            index = int(arg) - 1
            if index < 0:
                raise IndexError(index)
            return self.search.results[index]
        except (ValueError, IndexError):
            print("Pick a result number from the list.")
            return None

    def _ask_keyword(self, default: str = "") -> str:
        keyword = _prompt("Keyword", default)
        self.autocomplete.on_input(keyword)
        suggestions = self.autocomplete.flush()
        if not suggestions:
            return keyword
        for i, name in enumerate(suggestions[:8], start=1):
            print(f"  {i}. {name}")
        choice = _prompt("Pick a suggestion (enter to keep)")
        if choice.isdigit() and 1 <= int(choice) <= len(suggestions[:8]):
            return suggestions[int(choice) - 1]
        return keyword

    def do_search(self) -> None:
        last = self.last_form
        keyword = self._ask_keyword(last.keyword if last else "")
        print("Categories: " + ", ".join(c.value for c in CATEGORIES))
        category = _prompt("Category", last.category if last else "all")
        distance = _prompt("Distance (miles)", f"{last.distance:g}" if last else "10")
        last_location = ("auto" if last.auto_detect else last.location) if last else ""
        location = _prompt("Location (or 'auto' to detect)", last_location)
        auto = location.lower() == "auto"
        try:
            form = SearchForm(
                keyword=keyword,
                category=category,
                distance=distance,
                location="" if auto else location,
                auto_detect=auto,
            )
        except ValidationError as e:
            print(f"Please fix the form: {e.errors()[0].get('msg')}")
            return
        self.last_form = form
        try:
            if auto:
                detected = self.search.detect_location()
                print(f"Detected location: {detected.display_name or 'unknown'}")
            results = self.search.run(form)
        except GeocodeNotFound:
            print("Could not find that location. Try a more specific address.")
            return
        except GeocodeUpstreamError as e:
            logger.error("Location lookup failed: %s", e)
            print("Failed to look up the location. Please try again.")
            return
        if results is not None:
            _print_events(results, self._favorites_view)

    def do_detail(self, arg: str) -> None:
        ev = self._result(arg)
        if ev is None:
            return
        try:
            detail = describe_event(self.api.event_details(ev.id))
        except ApiError as e:
            print(f"Failed to load event details: {e}")
            return
        self.opened = detail
        artists = load_spotify_artists(self.api, detail)
        _print_detail(detail, artists, self._check_favorite(detail.id))

    def _check_favorite(self, event_id: str) -> bool:
        try:
            return self.api.is_favorite(event_id)
        except ApiError as e:
            logger.warning("Favorite check for %s failed: %s", event_id, e)
            return self.favorites.is_favorite(event_id)

    def do_fav(self, arg: str) -> None:
        if arg:
            ev = self._result(arg)
        elif self.opened is not None:
            ev = self.opened
        else:
            print("Open an event with 'detail <n>' or pick a result number.")
            return
        if ev is None:
            return
        try:
            added = self.favorites.toggle(ev.to_favorite())
        except ApiError as e:
            print(f"Favorite update failed: {e}")
            return
        print(f"{ev.name} {'added to' if added else 'removed from'} favorites.")

    def do_favorites(self) -> None:
        try:
            self.favorites.load()
        except ApiError as e:
            logger.error("Error loading favorites: %s", e)
        _print_favorites(self._favorites_view)

    def do_unfav(self, arg: str) -> None:
        try:
            index = int(arg) - 1
            if index < 0:
                raise IndexError(index)
            fav = list(self._favorites_view.values())[index]
        except (ValueError, IndexError):
            print("Pick a favorite number from the list.")
            return
        try:
            self.favorites.remove(fav.event_id)
        except ApiError as e:
            print(f"Failed to remove favorite: {e}")
            return
        print(f"{fav.name} removed from favorites.")
        _print_favorites(self._favorites_view)

    def do_clear(self) -> None:
        self.search.cancel()
        self.last_form = None
        self.opened = None
        self.autocomplete.clear()
        print("Search cleared.")

    def dispatch(self, line: str) -> bool:
        """Run one command line; False means quit."""
        cmd, _, arg = line.partition(" ")
        cmd = cmd.lower()
        arg = arg.strip()
        if cmd in {"exit", "quit"}:
            return False
        handlers = {
            "search": lambda: self.do_search(),
            "list": lambda: _print_events(self.search.results, self._favorites_view),
            "detail": lambda: self.do_detail(arg),
            "fav": lambda: self.do_fav(arg),
            "favorites": lambda: self.do_favorites(),
            "unfav": lambda: self.do_unfav(arg),
            "clear": lambda: self.do_clear(),
            "help": lambda: print(HELP),
        }
        handler = handlers.get(cmd)
        if handler is None:
            print(HELP)
        else:
            handler()
        return True


def main() -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    print("Event Finder (type 'help' for commands, 'exit' to quit)")
    cli = EventFinderCli()
    try:
        if not cli.api.health().get("database"):
            print("Favorites database is not connected; favorites will not be saved.")
        cli.favorites.load()
    except ApiError as e:
        logger.error("Error loading favorites: %s", e)

    while True:
        try:
            line = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            return 0

        if not line:
            continue
        if not cli.dispatch(line):
            print("Bye.")
            return 0


if __name__ == "__main__":
    raise SystemExit(main())
