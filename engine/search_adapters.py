from providers.soundcloud import SoundCloudAdapter
from providers.spotify import SpotifyAdapter
from providers.youtube import YouTubeAdapter


def default_adapters():
    adapters = [YouTubeAdapter(), SoundCloudAdapter(), SpotifyAdapter()]
    return {adapter.source: adapter for adapter in adapters}
