import math

from qina_env.sim.dynamics import WaypointFollower, wrap_to_pi


def heading_error(pose) -> float:
    return abs(wrap_to_pi(pose.target_heading - pose.heading))


def test_wrap_to_pi_half_open_interval():
    assert wrap_to_pi(math.pi) == math.pi
    assert wrap_to_pi(-math.pi) == math.pi
    assert abs(wrap_to_pi(3 * math.pi / 2) + math.pi / 2) < 1e-12
    for k in range(-20, 21):
        th = wrap_to_pi(0.37 * k)
        assert -math.pi < th <= math.pi


def test_straight_motion_reaches_waypoint():
    robot = WaypointFollower(speed=1.0, rotation_speed=5.0)
    robot.set_path([(2, 0, 1)])
    assert robot.moving
    for _ in range(15):
        robot.tick(0.1)
    pose = robot.pose()
    assert pose.position == (2.0, 0.0, 1.0)
    assert not pose.moving
    assert len(pose.path) == 0


def test_no_translation_while_misaligned():
    robot = WaypointFollower(speed=1.0, rotation_speed=5.0, initial_heading=0.0)
    robot.set_path([(1, 0, 2)])
    pose = robot.tick(0.01)
    assert pose.position == (1.0, 0.0, 1.0)
    assert abs(pose.heading - 0.05) < 1e-12
    assert abs(pose.target_heading - math.pi / 2) < 1e-12


def test_heading_error_non_increasing():
    robot = WaypointFollower(speed=1.0, rotation_speed=2.0, initial_heading=-math.pi / 2)
    robot.set_path([(1, 0, 2), (1, 0, 3)])
    prev = None
    while robot.moving:
        pose = robot.tick(0.02)
        err = heading_error(pose)
        if prev is not None:
            assert err <= prev + 1e-12
        prev = err
    assert prev == 0.0


def test_rotation_never_exceeds_budget():
    robot = WaypointFollower(rotation_speed=5.0, initial_heading=0.0)
    robot.set_path([(0, 0, 1)])  # target heading pi
    dt = 0.03
    before = robot.pose().heading
    for _ in range(30):
        after = robot.tick(dt).heading
        assert abs(wrap_to_pi(after - before)) <= 5.0 * dt + 1e-12
        before = after


def test_terminates_within_bound():
    speed, rot_speed, dt = 1.0, 5.0, 0.05
    path = [(2, 0, 1), (2, 0, 2), (2, 0, 3), (1, 0, 3)]
    robot = WaypointFollower(speed=speed, rotation_speed=rot_speed)
    robot.set_path(path)
    total_rotation = math.pi  # two quarter turns
    bound = (len(path) / speed + total_rotation / rot_speed) / dt
    ticks = 0
    while robot.moving and ticks < 10_000:
        robot.tick(dt)
        ticks += 1
    assert not robot.moving
    assert robot.pose().position == (1.0, 0.0, 3.0)
    assert ticks <= math.ceil(bound) + 2 * len(path)


def test_reset_then_tick_keeps_pose():
    robot = WaypointFollower()
    robot.set_path([(2, 0, 1), (3, 0, 1)])
    for _ in range(5):
        robot.tick(0.1)
    robot.reset((4.0, 0.0, 4.0), heading=1.0)
    pose = robot.tick(0.5)
    assert pose.position == (4.0, 0.0, 4.0)
    assert pose.heading == 1.0
    assert not pose.moving
    assert len(pose.path) == 0


def test_reset_defaults_to_initial_pose():
    robot = WaypointFollower(initial_position=(2.0, 0.0, 3.0), initial_heading=0.5)
    robot.set_path([(3, 0, 3)])
    robot.tick(0.2)
    pose = robot.reset()
    assert pose.position == (2.0, 0.0, 3.0)
    assert pose.heading == 0.5


def test_path_callback_cleared_on_completion():
    seen = []
    robot = WaypointFollower(on_path_changed=seen.append)
    robot.set_path([(2, 0, 1)])
    while robot.moving:
        robot.tick(0.1)
    assert seen[0] == [(2, 0, 1)]
    assert seen[-1] == []


def test_pose_is_a_copy():
    robot = WaypointFollower()
    robot.set_path([(2, 0, 1)])
    pose = robot.pose()
    pose.path.clear()
    assert len(robot.pose().path) == 1


def test_waypoint_under_robot_popped_without_turning():
    robot = WaypointFollower(initial_position=(2.0, 0.0, 2.0), initial_heading=2.0)
    robot.set_path([(2, 0, 2), (2, 0, 3)])
    pose = robot.tick(0.01)
    assert pose.heading == 2.0
    assert list(pose.path) == [(2, 0, 3)]
    assert pose.moving
    robot.set_path([(2, 0, 2)])
    pose = robot.tick(0.01)
    assert not pose.moving
    assert pose.heading == 2.0
