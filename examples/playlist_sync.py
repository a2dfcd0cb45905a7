"""
Playlist Sync Example

Copies the uploaded tracks of the library into a new playlist, then trims it.
Expects an OAuth bearer token in the MUSIC_TOKEN environment variable.
"""

import logging
import os

import httpx

from pagemirror import (
    ClientOptions,
    PartialMutationFailure,
    PlaylistEntries,
    Playlists,
    TrackLibrary,
)

logging.basicConfig(level=logging.INFO)

http = httpx.Client(headers={"Authorization": f"Bearer {os.environ['MUSIC_TOKEN']}"})
options = ClientOptions(page_size=250)

library = TrackLibrary.over_http(http, options)
playlists = Playlists.over_http(http, options)
entries = PlaylistEntries.over_http(http, options)

# All uploaded tracks (store tracks are filtered out page by page)
uploads = library.tracks()
print(f"Library holds {len(uploads)} uploaded tracks")

# Look up one track; only as many pages are fetched as needed
if uploads:
    track = library.get_track(uploads[0].id)
    print(f"First upload: {track.title if track else 'gone'}")

# Create the playlist and fill it in one batch
playlist_id = playlists.create("Uploads", description="Everything I uploaded")
try:
    entries.add_tracks(playlist_id, [t.id for t in uploads])
except PartialMutationFailure as e:
    print(f"Some tracks were rejected: {e}")

contents = entries.contents(playlist_id)
print(f"\nPlaylist has {len(contents)} entries")
for entry in contents[:5]:
    print(f"  - {entry.track_id}")

# Keep only the first ten entries
if len(contents) > 10:
    entries.remove_entries(contents[10:])
    print(f"Trimmed to {len(entries.contents(playlist_id))} entries")

http.close()
