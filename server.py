import argparse
import logging
import socket
import threading
import time

import network

logger = logging.getLogger(__name__)

HOST = "0.0.0.0"
PORT = 9999
SWEEP_RATE = 10         # idle checks per second
MEMBER_TIMEOUT = 10.0   # seconds without any packet before a member is dropped


class Member:
    def __init__(self, addr, now):
        self.addr = addr
        self.record = None  # last tracked presence record, None until track()
        self.last_seen = now


class PresenceRelay:
    """Single-channel presence relay.

    Keeps one presence record per subscribed address and fans out
    sync/join/leave to every member. A member is announced with JOIN on
    its first TRACK. Broadcasts are forwarded to every member except the
    sender and never stored. Packets from an address that is not a member
    are answered with UNSUBSCRIBED so an evicted client rejoins.
    """

    def __init__(self, host=HOST, port=PORT, sock=None):
        if sock is None:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.bind((host, port))
            sock.setblocking(False)
        self.sock = sock
        self.members = {}  # addr -> Member
        self.running = True
        self.lock = threading.Lock()

    def run(self):
        logger.info("Presence relay started on %s", self.sock.getsockname())
        threading.Thread(target=self.receive_loop, daemon=True).start()
        threading.Thread(target=self.sweep_loop, daemon=True).start()
        try:
            while self.running:
                time.sleep(1)
        except KeyboardInterrupt:
            self.running = False

    def receive_loop(self):
        while self.running:
            try:
                data, addr = self.sock.recvfrom(65536)
            except BlockingIOError:
                time.sleep(0.001)
                continue
            except OSError as e:
                logger.warning("recv error: %s", e)
                continue
            msg_type, payload = network.unpack_message(data)
            if msg_type is None:
                continue
            try:
                self.process_packet(msg_type, payload, addr)
            except network.DECODE_ERRORS as e:
                logger.debug("Malformed message %d from %s: %s", msg_type, addr, e)

    def process_packet(self, msg_type, payload, addr, now=None):
        now = time.time() if now is None else now
        with self.lock:
            member = self.members.get(addr)
            if member is not None:
                member.last_seen = now

            if msg_type == network.MSG_SUBSCRIBE:
                if member is None:
                    self.members[addr] = Member(addr, now)
                    logger.info("Subscriber joined from %s", addr)
                self.send(addr, network.pack_message(network.MSG_SUBSCRIBED))
                self.send(addr, self.sync_message())
                return

            if member is None:
                # evicted or never subscribed: tell the sender to subscribe again
                if msg_type in (network.MSG_PING, network.MSG_TRACK, network.MSG_BROADCAST):
                    self.send(addr, network.pack_message(network.MSG_UNSUBSCRIBED))
                return

            if msg_type == network.MSG_PING:
                # echo pong: send back timestamp
                self.send(addr, network.pack_message(network.MSG_PONG, payload))
                return

            if msg_type == network.MSG_TRACK:
                record, _ = network.unpack_record(payload)
                first = member.record is None
                member.record = record
                if first:
                    join = network.pack_message(network.MSG_JOIN, network.pack_records([record]))
                    self.fan_out(join, exclude=addr)
                self.fan_out(self.sync_message())

            elif msg_type == network.MSG_BROADCAST:
                self.fan_out(network.pack_message(network.MSG_BROADCAST, payload), exclude=addr)

            elif msg_type == network.MSG_CLOSE:
                self.remove_member(addr)

    def remove_member(self, addr):
        member = self.members.pop(addr, None)
        if member is None:
            return
        logger.info("Subscriber left from %s", addr)
        if member.record is not None:
            leave = network.pack_message(network.MSG_LEAVE, network.pack_records([member.record]))
            self.fan_out(leave)
            self.fan_out(self.sync_message())

    def sweep_loop(self):
        while self.running:
            time.sleep(1.0 / SWEEP_RATE)
            with self.lock:
                self.sweep(time.time())

    def sweep(self, now):
        for addr, member in list(self.members.items()):
            if now - member.last_seen > MEMBER_TIMEOUT:
                logger.info("Subscriber at %s timed out", addr)
                self.remove_member(addr)

    def sync_message(self):
        records = [m.record for m in self.members.values() if m.record is not None]
        return network.pack_message(network.MSG_SYNC, network.pack_records(records))

    def fan_out(self, msg, exclude=None):
        for addr in list(self.members.keys()):
            if addr != exclude:
                self.send(addr, msg)

    def send(self, addr, msg):
        try:
            self.sock.sendto(msg, addr)
        except OSError as e:
            logger.debug("send to %s failed: %s", addr, e)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Drift presence relay")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    PresenceRelay(args.host, args.port).run()


if __name__ == "__main__":
    main()
