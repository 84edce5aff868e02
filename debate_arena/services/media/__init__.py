from debate_arena.services.media.storage import SupabaseAudioStorage
from debate_arena.services.media.tts import TTSClient

__all__ = ["SupabaseAudioStorage", "TTSClient"]
