"""
Ableton Live OSC Client

Request/response vocabulary for driving Ableton Live through the AbletonOSC
remote script. Every operation opens its own UDPTransport, runs one or more
synchronous round trips (send a query, block for its reply) and closes the
transport again on every exit path. Nothing is cached between calls.

Commands (set_playing, set_tempo) are one-way: AbletonOSC does not
acknowledge them, so a successful return only means the datagram was
handed to the OS, not that Live acted on it.
"""

import logging
import time
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from .codec import (
    Decoder,
    WireMessage,
    decode,
    decode_bool,
    decode_float,
    decode_int_lenient,
    decode_int_strict,
    encode,
)
from .config import OSCSettings
from .errors import AbletonOSCError, DecodeError, OscTimeoutError
from .transport import UDPTransport

logger = logging.getLogger(__name__)

# ==================== OSC ADDRESSES ====================
# Fixed vocabulary understood by AbletonOSC; changing one needs a matching
# change on the Live side.

TEST = "/live/test"
GET_TEMPO = "/live/song/get/tempo"
GET_IS_PLAYING = "/live/song/get/is_playing"
GET_CURRENT_SONG_TIME = "/live/song/get/current_song_time"
GET_SIGNATURE_NUMERATOR = "/live/song/get/signature_numerator"
GET_SIGNATURE_DENOMINATOR = "/live/song/get/signature_denominator"
GET_NUM_SCENES = "/live/song/get/num_scenes"
GET_NUM_TRACKS = "/live/song/get/num_tracks"
START_PLAYING = "/live/song/start_playing"
STOP_PLAYING = "/live/song/stop_playing"
SET_TEMPO = "/live/song/set/tempo"

# AbletonOSC reports handler exceptions on this address
ERROR = "/live/error"

DEFAULT_SIGNATURE = 4


class AbletonInfo(BaseModel):
    """Snapshot of the Live set returned by get_info()."""
    model_config = ConfigDict(frozen=True)

    tempo: float
    is_playing: bool
    current_time: float
    scene_count: int
    track_count: int
    signature_numerator: int = DEFAULT_SIGNATURE
    signature_denominator: int = DEFAULT_SIGNATURE


TransportFactory = Callable[[OSCSettings], UDPTransport]


class AbletonOSCClient:
    """Synchronous AbletonOSC client.

    Args:
        settings: Endpoints and timing (default: OSCSettings.from_env())
        transport_factory: Builds the per-call transport (default:
            UDPTransport.from_settings)
    """

    def __init__(self,
                 settings: Optional[OSCSettings] = None,
                 transport_factory: Optional[TransportFactory] = None):
        self.settings = settings or OSCSettings.from_env()
        self._transport_factory = transport_factory or UDPTransport.from_settings

    def open_transport(self) -> UDPTransport:
        """A fresh, unopened transport for one operation."""
        return self._transport_factory(self.settings)

    # ==================== ROUND TRIPS ====================

    def _send(self, transport: UDPTransport, message: WireMessage) -> None:
        transport.send(encode(message))
        logger.debug("-> %s %s", message.address, list(message.values))

    def _await_reply(self, transport: UDPTransport, address: str, timeout: float) -> WireMessage:
        """Wait for the reply to ``address`` until ``timeout`` runs out."""
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise OscTimeoutError(timeout, address)
            try:
                data = transport.receive(timeout=remaining)
            except OscTimeoutError:
                raise OscTimeoutError(timeout, address)

            try:
                reply = decode(data)
            except DecodeError as exc:
                raise DecodeError(f"malformed reply ({exc})", address)

            if not self.settings.match_reply_address or reply.address == address:
                logger.debug("<- %s %s", reply.address, list(reply.values))
                return reply

            if reply.address == ERROR:
                logger.warning("AbletonOSC reported an error while waiting for %s: %s",
                               address, list(reply.values))
            else:
                logger.debug("Discarding stale reply %s while waiting for %s", reply.address, address)

    def query(self, address: str, decoder: Decoder,
              transport: Optional[UDPTransport] = None) -> Any:
        """Send a no-argument query and decode the first argument of its reply.

        Args:
            address: OSC query address
            decoder: One of the codec decode_* functions
            transport: An already open transport to reuse; when omitted a
                transport is opened and closed just for this query

        Raises:
            BindError, SendError, ReceiveError, OscTimeoutError, DecodeError
        """
        if transport is None:
            with self.open_transport() as owned:
                return self.query(address, decoder, owned)

        self._send(transport, WireMessage(address))
        reply = self._await_reply(transport, address, self.settings.timeout)
        return decoder(reply)

    def query_int(self, address: str, strict: bool = True,
                  transport: Optional[UDPTransport] = None) -> int:
        """Integer query; strict mode rejects float-typed replies."""
        decoder = decode_int_strict if strict else decode_int_lenient
        return self.query(address, decoder, transport)

    # ==================== CONNECTIVITY ====================

    def test_connection(self) -> bool:
        """
        Check whether AbletonOSC answers at all.

        Tries each probe address in turn (``/live/test`` first, then the
        tempo query), splitting the configured timeout between them. Any
        well-formed reply counts.

        Returns:
            bool: True if a reply arrived, False otherwise (never raises
            for connectivity problems)
        """
        probes = self.settings.probe_addresses
        budget = self.settings.timeout / len(probes)
        try:
            with self.open_transport() as transport:
                for address in probes:
                    try:
                        self._send(transport, WireMessage(address))
                        reply = decode(transport.receive(timeout=budget))
                    except AbletonOSCError as exc:
                        logger.debug("Probe %s failed: %s", address, exc)
                        continue
                    logger.info("AbletonOSC responding (probe %s answered by %s)", address, reply.address)
                    return True
        except AbletonOSCError as exc:
            logger.info("AbletonOSC connection test could not run: %s", exc)
            return False

        logger.info("AbletonOSC not responding on %s:%s",
                    self.settings.remote_host, self.settings.remote_port)
        return False

    # ==================== SONG INFO ====================

    def _optional_int(self, transport: UDPTransport, address: str, default: int) -> int:
        try:
            return self.query(address, decode_int_lenient, transport)
        except (OscTimeoutError, DecodeError) as exc:
            logger.warning("Using default %s for %s: %s", default, address, exc)
            return default

    def get_info(self) -> AbletonInfo:
        """
        Query tempo, transport state, position, time signature and counts.

        Tempo, playing state, song time, scene count and track count must
        all succeed or the whole call fails with the first error. The two
        time-signature fields fall back to 4.

        Returns:
            AbletonInfo: Fresh snapshot of the Live set
        """
        with self.open_transport() as transport:
            tempo = self.query(GET_TEMPO, decode_float, transport)
            is_playing = self.query(GET_IS_PLAYING, decode_bool, transport)
            current_time = self.query(GET_CURRENT_SONG_TIME, decode_float, transport)
            numerator = self._optional_int(transport, GET_SIGNATURE_NUMERATOR, DEFAULT_SIGNATURE)
            denominator = self._optional_int(transport, GET_SIGNATURE_DENOMINATOR, DEFAULT_SIGNATURE)
            scene_count = self.query(GET_NUM_SCENES, decode_int_lenient, transport)
            track_count = self.query(GET_NUM_TRACKS, decode_int_lenient, transport)

        return AbletonInfo(
            tempo=tempo,
            is_playing=is_playing,
            current_time=current_time,
            scene_count=scene_count,
            track_count=track_count,
            signature_numerator=numerator,
            signature_denominator=denominator,
        )

    # ==================== COMMANDS (one-way) ====================

    def _command(self, message: WireMessage) -> None:
        with self.open_transport() as transport:
            self._send(transport, message)

    def set_playing(self, playing: bool) -> None:
        """Start or stop playback. No reply is awaited."""
        self._command(WireMessage(START_PLAYING if playing else STOP_PLAYING))
        logger.info("Sent %s", "start_playing" if playing else "stop_playing")

    def set_tempo(self, bpm: float) -> None:
        """Set the song tempo in BPM. No reply is awaited."""
        self._command(WireMessage.build(SET_TEMPO, float(bpm)))
        logger.info("Sent tempo %.2f BPM", float(bpm))
