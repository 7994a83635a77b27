"""Index arithmetic for playlist playback.

Every function takes the current :class:`PlaylistPlaybackState` and returns
the state that should replace it. ``advance`` returns ``None`` when a
non-looping playlist runs past its last video; the caller ends the session.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import List, Optional

from .models import PlaylistPlaybackState, VideoRef


def build_playback(
    playlist_id: int,
    name: str,
    videos: List[VideoRef],
    loop: bool = True,
    shuffle: bool = False,
    rng: Optional[random.Random] = None,
) -> PlaylistPlaybackState:
    """Create the playback state for a new session, shuffling once if asked."""
    order = list(videos)
    if shuffle:
        (rng or random).shuffle(order)
    return PlaylistPlaybackState(
        playlist_id=playlist_id,
        name=name,
        videos=tuple(order),
        current_video_index=0,
        is_playing=True,
        loop=loop,
        shuffle=shuffle,
    )


def advance(state: PlaylistPlaybackState) -> Optional[PlaylistPlaybackState]:
    next_index = state.current_video_index + 1
    if next_index < len(state.videos):
        return replace(state, current_video_index=next_index)
    if state.loop:
        return replace(state, current_video_index=0)
    return None


def retreat(state: PlaylistPlaybackState) -> PlaylistPlaybackState:
    # Wraps regardless of ``loop``.
    prev_index = state.current_video_index - 1
    if prev_index < 0:
        prev_index = len(state.videos) - 1
    return replace(state, current_video_index=prev_index)


def seek(state: PlaylistPlaybackState, index: int) -> PlaylistPlaybackState:
    if 0 <= index < len(state.videos):
        return replace(state, current_video_index=index)
    return state


def toggle_play_pause(state: PlaylistPlaybackState) -> PlaylistPlaybackState:
    return replace(state, is_playing=not state.is_playing)
