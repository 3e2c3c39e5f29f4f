import argparse
import colorsys
import logging
import random
import socket
import time

import glfw
import imgui

import network
from config import Config
from game import Game
from gui import GUI
from presence import PresenceChannel
from world import now_ms

logger = logging.getLogger(__name__)

# Constants
SERVER_IP = "127.0.0.1"
SERVER_PORT = 9999
WIDTH, HEIGHT = 720, 720
SPRITE_PATH = "assets/pixel_sphere_16x16.png"


class Client:
    def __init__(self, server_addr, latency=0.0, jitter=0.0, config=None):
        self.config = config or Config()

        # Networking
        real_sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        real_sock.setblocking(False)
        self.sock = network.SimulatedSocket(real_sock, latency=latency, jitter=jitter)
        self.channel = PresenceChannel(self.sock, server_addr)

        # Game State
        self.game = Game(self.channel, self.config)
        self.debug_show_authoritative = False

        # GUI
        c = self.config
        self.gui = GUI(WIDTH, HEIGHT, f"Drift - {self.game.local_id[:6]}", c.canvas_width, c.canvas_height)
        self.sprite_tex = self.gui.load_texture(SPRITE_PATH)
        self.install_input_callbacks()

        logger.info("Connecting to presence relay at %s:%s as %s", *server_addr, self.game.local_id)
        self.game.connect()

    def install_input_callbacks(self):
        window = self.gui.window
        glfw.set_mouse_button_callback(window, self.on_mouse_button)
        glfw.set_cursor_pos_callback(window, self.on_cursor_pos)
        glfw.set_window_focus_callback(window, self.on_focus)

    def pointer_position(self):
        x, y = glfw.get_cursor_pos(self.gui.window)
        return self.gui.window_to_canvas(x, y)

    def on_mouse_button(self, window, button, action, mods):
        if button != glfw.MOUSE_BUTTON_LEFT or imgui.get_io().want_capture_mouse:
            return
        if action == glfw.PRESS:
            self.game.gesture.on_pointer_down(self.pointer_position(), now_ms())
        elif action == glfw.RELEASE:
            self.game.gesture.on_pointer_up(now_ms())

    def on_cursor_pos(self, window, x, y):
        self.gui.impl.mouse_callback(window, x, y)
        self.game.gesture.on_pointer_move(self.gui.window_to_canvas(x, y))

    def on_focus(self, window, focused):
        if not focused:
            self.game.gesture.on_pointer_cancel()

    def run(self):
        c = self.config
        while not self.gui.should_close():
            self.gui.poll_events()
            self.channel.pump()

            entities = self.game.tick(now_ms())
            cam_x, cam_y = self.game.camera.position

            # Render
            self.gui.prepare_frame()
            self.gui.draw_grid(-(cam_x + c.canvas_width / 2), -(cam_y + c.canvas_height / 2), c.grid_size)

            imgui.set_next_window_position(0, 0)
            imgui.set_next_window_size(*glfw.get_window_size(self.gui.window))
            imgui.set_next_window_bg_alpha(0.0)
            imgui.begin("Overlay", flags=imgui.WINDOW_NO_TITLE_BAR | imgui.WINDOW_NO_RESIZE | imgui.WINDOW_NO_MOVE | imgui.WINDOW_NO_SCROLLBAR | imgui.WINDOW_NO_INPUTS | imgui.WINDOW_NO_BRING_TO_FRONT_ON_FOCUS)
            draw_list = imgui.get_window_draw_list()

            # World, back to front
            self.gui.push_camera(cam_x, cam_y)
            for e in entities:
                self.gui.draw_sprite(self.sprite_tex, e.x, e.y, c.sprite_size)
                if e.id == self.game.selected_id:
                    self.gui.draw_ring(e.x, e.y, c.sprite_size * 0.75, self.get_player_color(e.id))
            if self.debug_show_authoritative:
                for remote in self.game.remotes.entities():
                    ax, ay = remote.authoritative
                    self.gui.draw_ring(ax, ay, c.sprite_size / 2, self.get_player_color(remote.id))
            self.gui.pop_camera()

            for e in entities:
                sx, sy = self.game.camera.world_to_screen(e.x, e.y)
                self.gui.draw_label(draw_list, sx, sy - c.sprite_size * 3 / 4, e.id[:6])

            imgui.end()

            # UI
            imgui.begin("Debug")
            imgui.text(f"FPS: {imgui.get_io().framerate:.1f}")
            imgui.text(f"Players: {len(entities)}")
            imgui.text(f"RTT (estimated): {self.channel.rtt*1000:.1f}ms")
            imgui.text(f"Latency: {self.sock.latency*1000:.1f}ms")
            imgui.text(f"Jitter : {self.sock.jitter*1000:.1f}ms")
            _, self.sock.latency = imgui.slider_float("Latency (s)", self.sock.latency, 0.0, 1.0)
            _, self.sock.jitter = imgui.slider_float("Jitter (s)", self.sock.jitter, 0.0, 0.1)
            _, self.debug_show_authoritative = imgui.checkbox("Show Authoritative Positions", self.debug_show_authoritative)
            imgui.end()

            self.gui.end_frame()
            time.sleep(1/120)

    def close(self):
        self.channel.close()
        self.gui.shutdown()

    @staticmethod
    def get_player_color(player_id):
        h = random.Random(player_id).random()  # consistent per player_id
        r, g, b = colorsys.hsv_to_rgb(h, 0.5, 0.5)
        return (r, g, b)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Drift multiplayer client")
    parser.add_argument("--host", default=SERVER_IP)
    parser.add_argument("--port", type=int, default=SERVER_PORT)
    parser.add_argument("--latency", type=float, default=0.0, help="simulated one-way latency (s)")
    parser.add_argument("--jitter", type=float, default=0.0, help="simulated jitter (s)")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    client = Client((args.host, args.port), latency=args.latency, jitter=args.jitter)
    try:
        client.run()
    except KeyboardInterrupt:
        pass
    finally:
        client.close()


if __name__ == "__main__":
    main()
