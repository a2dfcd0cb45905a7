from dataclasses import dataclass

DEFAULT_BASE_URL = "https://mclients.googleapis.com/sj/v2.5/"


@dataclass
class ClientOptions:
    """
    Connection settings shared by the page fetchers and batch clients.

    Passed explicitly to every collaborator; nothing reads process-wide state.
    """

    base_url: str = DEFAULT_BASE_URL
    page_size: int = -1  # -1 lets the server choose
    timeout: float = 30.0

    def url_for(self, path: str) -> str:
        """
        Join a collection path onto the base url.

        Args:
            path: Relative endpoint path (e.g. "trackfeed")

        Returns:
            The absolute endpoint url
        """
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")


@dataclass(frozen=True)
class CollectionEndpoints:
    """The paged listing and the mutation endpoint of one collection kind."""

    name: str
    feed_path: str
    batch_path: str


LIBRARY_TRACKS = CollectionEndpoints(name="tracks", feed_path="trackfeed", batch_path="trackbatch")
PLAYLISTS = CollectionEndpoints(
    name="playlists", feed_path="playlistfeed", batch_path="playlistbatch"
)
PLAYLIST_ENTRIES = CollectionEndpoints(
    name="playlist_entries", feed_path="plentryfeed", batch_path="plentriesbatch"
)
