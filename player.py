from world import ORIGIN, lerp


class LocalPlayer:
    def __init__(self, player_id):
        self.id = player_id
        self.position = ORIGIN
        self.impulse_velocity = ORIGIN
        self.smoothed_input = ORIGIN
        self.moved = False

    def state(self):
        return {'id': self.id, 'position': {'x': self.position[0], 'y': self.position[1]}}


class Camera:
    def __init__(self, canvas_width, canvas_height, follow_speed):
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.follow_speed = follow_speed
        self.position = ORIGIN

    def follow(self, target, dt):
        # camera offset that puts target at canvas centre
        goal_x = -target[0] + self.canvas_width / 2
        goal_y = -target[1] + self.canvas_height / 2
        t = self.follow_speed * dt
        self.position = (lerp(self.position[0], goal_x, t), lerp(self.position[1], goal_y, t))

    def screen_to_world(self, x, y):
        return (x - self.position[0], y - self.position[1])

    def world_to_screen(self, x, y):
        return (x + self.position[0], y + self.position[1])
