# 标准库
import csv
import io
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple, Union

# 第三方库
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from loguru import logger

# 自定义模块
from models.database import Volunteer, VolunteerAssignment
from schemas import ImportSummary, RowError
from utils.time_utils import parse_iso_datetime
from .assignment_service import AssignmentService, normalize_assignment_role, normalize_assignment_status
from .exceptions import ServiceError, ValidationError, ConflictError
from .identity_service import IdentityService, normalize_email, normalize_text

# 逻辑列名 → 可接受的表头（去空白、小写后比较）
COLUMN_ALIASES: Dict[str, Tuple[str, ...]] = {
    "name": ("name",),
    "email": ("email",),
    "phone": ("phone",),
    "dept": ("dept", "department"),
    "college_id": ("college_id", "college id", "roll no", "roll_no"),
    "shift": ("shift",),
    "role": ("role",),
    "status": ("status",),
    "notes": ("notes",),
    "group_no": ("group no", "group_no"),
    "faculty": ("faculty",),
    "reporting_time": ("reporting_time_iso",),
    "start_time": ("start_time_iso",),
    "end_time": ("end_time_iso",),
}

# 文本列 → 模型列，超出列长度的单元格按行级错误处理
LENGTH_LIMITED_COLUMNS = (
    ("name", Volunteer.__table__.c.name),
    ("email", Volunteer.__table__.c.email),
    ("phone", Volunteer.__table__.c.phone),
    ("dept", Volunteer.__table__.c.dept),
    ("college_id", Volunteer.__table__.c.college_id),
    ("shift", VolunteerAssignment.__table__.c.shift),
)

TIME_COLUMNS = (
    ("reporting_time", "reporting_time_iso"),
    ("start_time", "start_time_iso"),
    ("end_time", "end_time_iso"),
)


@dataclass
class RosterRow:
    """一行解析后的名册数据"""
    line: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    dept: Optional[str] = None
    college_id: Optional[str] = None
    shift: Optional[str] = None
    role: str = "volunteer"
    status: str = "assigned"
    notes: Optional[str] = None
    reporting_time: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class RosterHeader(object):
    """表头索引：逻辑列名 → 列下标"""

    def __init__(self, header: List[str]):
        positions = {}
        for i, column in enumerate(header):
            key = column.strip().lower()
            if key and key not in positions:
                positions[key] = i
        self.index: Dict[str, int] = {}
        for field, aliases in COLUMN_ALIASES.items():
            for alias in aliases:
                if alias in positions:
                    self.index[field] = positions[alias]
                    break

    def has(self, field: str) -> bool:
        return field in self.index

    def get(self, record: List[str], field: str) -> str:
        i = self.index.get(field)
        if i is None or i >= len(record):
            return ""
        return record[i].strip()


def _compose_notes(notes: str, group_no: str, faculty: str) -> Optional[str]:
    """把 Group No / Faculty 两列折叠进备注"""
    parts = []
    if group_no:
        parts.append(f"Group No: {group_no}")
    if faculty:
        parts.append(f"Faculty: {faculty}")
    extra = ", ".join(parts)
    if notes and extra:
        return f"{notes}; {extra}"
    return notes or extra or None


class RosterImportService(object):
    """名册导入

    - 表头不区分大小写、去除首尾空白；表头为第1行
    - 每行：解析 → 身份解析 → 新建志愿者（如需要）→ 排班 upsert
    - 行级错误（缺少姓名、时间格式、身份冲突、唯一约束）记录后继续
    - 整批在同一事务中执行，每行使用 SAVEPOINT；存储层其他异常回滚整批并抛出
    """

    def __init__(self,
                 identity_service: Optional[IdentityService] = None,
                 assignment_service: Optional[AssignmentService] = None):
        self.identity_service = identity_service or IdentityService()
        self.assignment_service = assignment_service or AssignmentService()

    def read_csv(self, content: Union[bytes, str]) -> Tuple[RosterHeader, Iterator[Tuple[int, List[str]]]]:
        """解析 CSV 内容，返回表头与 (行号, 记录) 迭代器"""
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8-sig")
            except UnicodeDecodeError:
                raise ValidationError("CSV 文件必须为 UTF-8 编码")
        else:
            content = content.lstrip("\ufeff")

        reader = csv.reader(io.StringIO(content))
        header = next(reader, None)
        if not header or not any(column.strip() for column in header):
            raise ValidationError("CSV 文件为空或缺少表头")
        roster_header = RosterHeader(header)
        if not roster_header.has("name"):
            raise ValidationError("CSV 表头缺少 name 列")

        def records():
            for line, record in enumerate(reader, start=2):
                if not any(cell.strip() for cell in record):
                    continue
                yield line, record

        return roster_header, records()

    def parse_row(self, header: RosterHeader, line: int, record: List[str]) -> RosterRow:
        """解析单行，格式问题抛出 ValidationError"""
        name = header.get(record, "name")
        if not name:
            raise ValidationError("missing name")

        email = normalize_email(header.get(record, "email"))
        if email and "@" not in email:
            raise ValidationError(f"invalid email '{email}'")

        for field, column in LENGTH_LIMITED_COLUMNS:
            limit = column.type.length
            value = header.get(record, field)
            if limit and len(value) > limit:
                raise ValidationError(f"{field} too long ({len(value)} > {limit} characters)")

        times = {}
        for field, column in TIME_COLUMNS:
            raw = header.get(record, field)
            if not raw:
                times[field] = None
                continue
            try:
                times[field] = parse_iso_datetime(raw)
            except ValueError:
                raise ValidationError(f"bad {column} (ISO-8601): {raw}")

        return RosterRow(
            line=line,
            name=name,
            email=email,
            phone=normalize_text(header.get(record, "phone")),
            dept=normalize_text(header.get(record, "dept")),
            college_id=normalize_text(header.get(record, "college_id")),
            shift=normalize_text(header.get(record, "shift")),
            role=normalize_assignment_role(header.get(record, "role")),
            status=normalize_assignment_status(header.get(record, "status")),
            notes=_compose_notes(
                header.get(record, "notes"), header.get(record, "group_no"), header.get(record, "faculty")
            ),
            **times,
        )

    async def _apply_row(self, db: Session, event_id: int, committee_id: int, row: RosterRow) -> Tuple[bool, bool]:
        """在 SAVEPOINT 中写入一行，返回 (是否新建志愿者, 是否新建排班)"""
        with db.begin_nested():
            volunteer, volunteer_created = await self.identity_service.resolve_or_create(
                db,
                name=row.name,
                email=row.email,
                college_id=row.college_id,
                phone=row.phone,
                dept=row.dept,
            )
            _, assignment_created = await self.assignment_service.upsert_assignment(
                db,
                event_id=event_id,
                committee_id=committee_id,
                volunteer_id=volunteer.id,
                role=row.role,
                status=row.status,
                reporting_time=row.reporting_time,
                shift=row.shift,
                start_time=row.start_time,
                end_time=row.end_time,
                notes=row.notes,
            )
        return volunteer_created, assignment_created

    async def import_roster(self,
                            db: Session,
                            event_id: int,
                            committee_id: int,
                            content: Union[bytes, str]) -> ImportSummary:
        """导入名册到指定活动与委员会

        Raises:
            ValidationError: 文件或目标活动/委员会不合法（整批拒绝）
            Exception: 存储层异常，整批回滚
        """
        summary = ImportSummary()
        try:
            await self.assignment_service.ensure_event_committee(db, event_id, committee_id)
            header, records = self.read_csv(content)

            for line, record in records:
                try:
                    row = self.parse_row(header, line, record)
                    volunteer_created, assignment_created = await self._apply_row(db, event_id, committee_id, row)
                except (ValidationError, ConflictError) as row_error:
                    summary.errors.append(RowError(line=line, error=row_error.message))
                    continue
                except IntegrityError as ie:
                    logger.warning(f"名册第 {line} 行违反唯一约束: {ie.orig}")
                    summary.errors.append(RowError(line=line, error="duplicate identity or assignment"))
                    continue

                if volunteer_created:
                    summary.created_volunteers += 1
                if assignment_created:
                    summary.created_assignments += 1
                else:
                    summary.updated_assignments += 1

            db.commit()
            logger.info(
                f"名册导入完成: event_id={event_id} committee_id={committee_id} "
                f"created_volunteers={summary.created_volunteers} created_assignments={summary.created_assignments} "
                f"updated_assignments={summary.updated_assignments} errors={len(summary.errors)}"
            )
            return summary
        except ServiceError as se:
            logger.warning(f"名册导入被拒绝: {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"名册导入失败，整批回滚: {e}")
            db.rollback()
            raise
