import logging
import math

import glfw
import imgui
import OpenGL.GL as gl
from imgui.integrations.glfw import GlfwRenderer
from PIL import Image

logger = logging.getLogger(__name__)


class GUI:
    """Window, GL state and drawing helpers.

    Everything is drawn in canvas space: (0, 0) is the top-left corner and
    (canvas_width, canvas_height) the bottom-right, whatever the window size.
    """

    def __init__(self, width, height, title, canvas_width, canvas_height):
        self.width = width
        self.height = height
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.window = self.init_glfw(width, height, title)
        self.impl = GlfwRenderer(self.window)

    def init_glfw(self, width, height, title):
        if not glfw.init():
            raise RuntimeError("Failed to initialize GLFW")
        glfw.window_hint(glfw.SAMPLES, 4)
        window = glfw.create_window(width, height, title, None, None)
        if not window:
            glfw.terminate()
            raise RuntimeError("Failed to create GLFW window")
        glfw.make_context_current(window)
        imgui.create_context()
        return window

    def should_close(self):
        return glfw.window_should_close(self.window)

    def poll_events(self):
        glfw.poll_events()
        self.impl.process_inputs()

    def window_to_canvas(self, x, y):
        w, h = glfw.get_window_size(self.window)
        if w == 0 or h == 0:
            return (0.0, 0.0)
        return (x * self.canvas_width / w, y * self.canvas_height / h)

    def canvas_to_window(self, x, y):
        w, h = glfw.get_window_size(self.window)
        return (x * w / self.canvas_width, y * h / self.canvas_height)

    def prepare_frame(self):
        imgui.new_frame()
        fb_w, fb_h = glfw.get_framebuffer_size(self.window)
        gl.glViewport(0, 0, fb_w, fb_h)
        gl.glClearColor(1, 1, 1, 1)
        gl.glClear(gl.GL_COLOR_BUFFER_BIT)

        gl.glMatrixMode(gl.GL_PROJECTION)
        gl.glLoadIdentity()
        gl.glOrtho(0, self.canvas_width, self.canvas_height, 0, -1, 1)
        gl.glMatrixMode(gl.GL_MODELVIEW)
        gl.glLoadIdentity()

    def end_frame(self):
        imgui.render()
        self.impl.render(imgui.get_draw_data())
        glfw.swap_buffers(self.window)

    def shutdown(self):
        self.impl.shutdown()
        glfw.terminate()

    def load_texture(self, path):
        try:
            img = Image.open(path).convert("RGBA")
        except OSError as e:
            logger.warning("Failed to load %s: %s", path, e)
            return 0
        tex_id = gl.glGenTextures(1)
        gl.glBindTexture(gl.GL_TEXTURE_2D, tex_id)
        # pixel art, keep it crisp
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MIN_FILTER, gl.GL_NEAREST)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MAG_FILTER, gl.GL_NEAREST)
        gl.glTexImage2D(gl.GL_TEXTURE_2D, 0, gl.GL_RGBA, img.width, img.height, 0, gl.GL_RGBA, gl.GL_UNSIGNED_BYTE, img.tobytes())
        return tex_id

    def push_camera(self, camera_x, camera_y):
        gl.glPushMatrix()
        gl.glTranslatef(camera_x, camera_y, 0)

    def pop_camera(self):
        gl.glPopMatrix()

    def draw_grid(self, offset_x, offset_y, grid_size):
        gl.glDisable(gl.GL_TEXTURE_2D)
        gl.glColor3f(0.8, 0.8, 0.8)
        gl.glLineWidth(0.5)
        start_x = math.floor(offset_x / grid_size) * grid_size - offset_x
        start_y = math.floor(offset_y / grid_size) * grid_size - offset_y

        gl.glBegin(gl.GL_LINES)
        x = start_x
        while x < self.canvas_width:
            gl.glVertex2f(x, 0)
            gl.glVertex2f(x, self.canvas_height)
            x += grid_size
        y = start_y
        while y < self.canvas_height:
            gl.glVertex2f(0, y)
            gl.glVertex2f(self.canvas_width, y)
            y += grid_size
        gl.glEnd()
        gl.glColor3f(1, 1, 1)

    def draw_sprite(self, tex, x, y, size):
        if not tex:
            self.draw_circle(x, y, size / 2, (0.2, 0.2, 0.2))
            return
        gl.glEnable(gl.GL_TEXTURE_2D)
        gl.glBindTexture(gl.GL_TEXTURE_2D, tex)
        gl.glEnable(gl.GL_BLEND)
        gl.glBlendFunc(gl.GL_SRC_ALPHA, gl.GL_ONE_MINUS_SRC_ALPHA)
        h = size / 2
        gl.glBegin(gl.GL_QUADS)
        gl.glTexCoord2f(0, 0); gl.glVertex2f(x - h, y - h)
        gl.glTexCoord2f(1, 0); gl.glVertex2f(x + h, y - h)
        gl.glTexCoord2f(1, 1); gl.glVertex2f(x + h, y + h)
        gl.glTexCoord2f(0, 1); gl.glVertex2f(x - h, y + h)
        gl.glEnd()
        gl.glDisable(gl.GL_TEXTURE_2D)

    def draw_circle(self, x, y, r, color):
        gl.glDisable(gl.GL_TEXTURE_2D)
        gl.glColor3f(*color)
        gl.glBegin(gl.GL_TRIANGLE_FAN)
        gl.glVertex2f(x, y)
        for i in range(65):
            rad = 2 * math.pi * i / 64
            gl.glVertex2f(x + r * math.cos(rad), y + r * math.sin(rad))
        gl.glEnd()
        gl.glColor3f(1, 1, 1)

    def draw_ring(self, x, y, radius, color):
        gl.glDisable(gl.GL_TEXTURE_2D)
        gl.glColor3f(*color)
        gl.glLineWidth(2.0) # 2px line
        gl.glBegin(gl.GL_LINE_LOOP)
        for i in range(64):
            rad = 2 * math.pi * i / 64
            gl.glVertex2f(x + radius * math.cos(rad), y + radius * math.sin(rad))
        gl.glEnd()
        gl.glColor3f(1, 1, 1)

    def draw_label(self, draw_list, x, y, text):
        """x, y are canvas coordinates of the label's bottom centre."""
        sx, sy = self.canvas_to_window(x, y)
        size = imgui.calc_text_size(text)
        draw_list.add_text(sx - size.x/2, sy - size.y, 0xFF000000, text)
