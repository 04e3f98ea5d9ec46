"""Store 异常体系"""


class StoreError(Exception):
    """Store 包基础异常"""


class TaskVersionConflictError(StoreError):
    """乐观锁冲突：写入时任务版本号已被其他写入者推进

    activity_log / review_state 以读-改-写方式整体回写，
    版本不符时拒绝写入，避免静默丢失另一写入者追加的日志条目。
    """

    def __init__(self, task_id: str, expected_version: int) -> None:
        super().__init__(
            f"Task {task_id} was modified concurrently (expected version {expected_version})"
        )
        self.task_id = task_id
        self.expected_version = expected_version
