import logging
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List, Optional, Tuple

from app.core.workspace_guard import get_owned_or_404
from app.modules.leads.phone import (
    format_phone_number, alternative_phone_number, only_digits, origin_phone
)
from app.modules.leads.schemas import (
    LeadCreate, LeadUpdate, LeadStageUpdate, LeadResponse, LabelResponse, CustomFieldValue
)

logger = logging.getLogger(__name__)

LEAD_NOT_FOUND = "Lead not found"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LeadService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_lead_row(self, lead_id: str, workspace_id: str) -> Dict[str, Any]:
        return get_owned_or_404(self.supabase, "leads", lead_id, workspace_id, detail=LEAD_NOT_FOUND)

    def labels_for(self, lead_ids: List[str]) -> Dict[str, List[LabelResponse]]:
        if not lead_ids:
            return {}
        links = self.supabase.table("lead_tags")\
            .select("lead_id, tag_id")\
            .in_("lead_id", lead_ids)\
            .execute().data or []
        if not links:
            return {}
        tags = self.supabase.table("tags")\
            .select("id, name, color")\
            .in_("id", list({link["tag_id"] for link in links}))\
            .execute().data or []
        by_id = {t["id"]: t for t in tags}
        labels: Dict[str, List[LabelResponse]] = {}
        for link in links:
            tag = by_id.get(link["tag_id"])
            if tag:
                labels.setdefault(link["lead_id"], []).append(LabelResponse(**tag))
        return labels

    def _to_responses(self, rows: List[Dict[str, Any]]) -> List[LeadResponse]:
        labels = self.labels_for([r["id"] for r in rows])
        return [LeadResponse(**row, labels=labels.get(row["id"], [])) for row in rows]

    def _check_labels(self, label_ids: List[str], workspace_id: str) -> List[str]:
        label_ids = list(dict.fromkeys(label_ids))
        if not label_ids:
            return []
        found = self.supabase.table("tags")\
            .select("id")\
            .eq("workspace_id", workspace_id)\
            .in_("id", label_ids)\
            .execute().data or []
        found_ids = {t["id"] for t in found}
        missing = [tid for tid in label_ids if tid not in found_ids]
        if missing:
            raise HTTPException(status_code=400, detail=f"Unknown tags: {', '.join(missing)}")
        return label_ids

    def _check_owner(self, owner_id: Optional[str], workspace_id: str) -> None:
        if not owner_id:
            return
        found = self.supabase.table("users")\
            .select("id")\
            .eq("id", owner_id)\
            .eq("workspace_id", workspace_id)\
            .limit(1)\
            .execute()
        if not found.data:
            raise HTTPException(status_code=400, detail="Owner not found in workspace")

    def _replace_labels(self, lead_id: str, label_ids: List[str]) -> None:
        self.supabase.table("lead_tags").delete().eq("lead_id", lead_id).execute()
        if label_ids:
            self.supabase.table("lead_tags").insert(
                [{"lead_id": lead_id, "tag_id": tid} for tid in label_ids]
            ).execute()

    def find_by_phone(self, phone: str, workspace_id: str) -> Optional[Dict[str, Any]]:
        """Lead of the workspace matching the phone with or without the mobile 9."""
        candidates = [phone]
        alternative = alternative_phone_number(phone)
        if alternative:
            candidates.append(alternative)
        result = self.supabase.table("leads")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .in_("phone", candidates)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def list_leads(
        self,
        workspace_id: str,
        search: Optional[str] = None,
        stage_id: Optional[str] = None,
        origin_id: Optional[str] = None,
    ) -> List[LeadResponse]:
        query = self.supabase.table("leads")\
            .select("*")\
            .eq("workspace_id", workspace_id)
        if stage_id:
            query = query.eq("stage_id", stage_id)
        if origin_id:
            query = query.eq("origin_id", origin_id)
        # PostgREST or() syntax uses commas and parentheses as separators
        term = "".join(ch for ch in search or "" if ch not in ",()*%").strip()
        if term:
            query = query.or_(f"name.ilike.%{term}%,phone.ilike.%{term}%,email.ilike.%{term}%")
        result = query.order("created_at", desc=True).execute()
        return self._to_responses(result.data or [])

    def get_lead(self, lead_id: str, workspace_id: str) -> LeadResponse:
        return self._to_responses([self.get_lead_row(lead_id, workspace_id)])[0]

    def create_lead(self, data: LeadCreate, workspace_id: str) -> Tuple[LeadResponse, bool]:
        """
        Create a lead, deduplicating on phone within the workspace.

        Returns (lead, created). A lead already known under the same origin is
        updated in place; under a different origin a separate lead is created
        with an origin-suffixed phone and the plain phone is echoed back.
        """
        if len(only_digits(data.phone)) < 8 and "@" not in data.phone:
            raise HTTPException(status_code=400, detail="Invalid phone number")
        phone = format_phone_number(data.phone)
        label_ids = self._check_labels(data.label_ids, workspace_id)
        self._check_owner(data.owner_id, workspace_id)

        existing = self.find_by_phone(phone, workspace_id)
        if existing and existing.get("origin_id") != data.origin_id and data.origin_id:
            # Already stored for this origin under the suffixed phone
            suffixed = self.supabase.table("leads")\
                .select("*")\
                .eq("workspace_id", workspace_id)\
                .eq("phone", origin_phone(phone, data.origin_id))\
                .limit(1)\
                .execute()
            if suffixed.data:
                existing = suffixed.data[0]
        if existing and existing.get("origin_id") == data.origin_id:
            update_data = {"updated_at": _now()}
            for column in ("stage_id", "value", "owner_id", "source"):
                value = getattr(data, column)
                if value is not None:
                    update_data[column] = value
            result = self.supabase.table("leads")\
                .update(update_data)\
                .eq("id", existing["id"])\
                .eq("workspace_id", workspace_id)\
                .execute()
            if label_ids:
                self._replace_labels(existing["id"], label_ids)
            logger.info(f"Lead {existing['id']} matched by phone, updated in place")
            lead = self._to_responses(result.data or [existing])[0]
            lead.updated = True
            return lead, False

        stored_phone = phone
        if existing:
            suffix = data.origin_id or str(int(datetime.now(timezone.utc).timestamp() * 1000))
            stored_phone = origin_phone(phone, suffix)

        result = self.supabase.table("leads").insert({
            "workspace_id": workspace_id,
            "name": data.name,
            "phone": stored_phone,
            "email": data.email,
            "photo": data.photo,
            "notes": data.notes,
            "value": data.value,
            "source": data.source,
            "origin_id": data.origin_id,
            "stage_id": data.stage_id,
            "owner_id": data.owner_id,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create lead")
        row = result.data[0]
        if label_ids:
            self._replace_labels(row["id"], label_ids)
        lead = self._to_responses([row])[0]
        if existing:
            lead.phone = phone
        return lead, True

    def update_lead(self, lead_id: str, data: LeadUpdate, workspace_id: str) -> LeadResponse:
        self.get_lead_row(lead_id, workspace_id)
        update_data = data.model_dump(exclude_unset=True, exclude={"label_ids"})
        if "phone" in update_data:
            if not update_data["phone"] or len(only_digits(update_data["phone"])) < 8:
                raise HTTPException(status_code=400, detail="Invalid phone number")
            update_data["phone"] = format_phone_number(update_data["phone"])
            duplicate = self.find_by_phone(update_data["phone"], workspace_id)
            if duplicate and duplicate["id"] != lead_id:
                raise HTTPException(status_code=409, detail="Another lead already uses this phone")
        if "owner_id" in update_data:
            self._check_owner(update_data["owner_id"], workspace_id)
        if data.label_ids is not None:
            self._replace_labels(lead_id, self._check_labels(data.label_ids, workspace_id))
        if update_data:
            update_data["updated_at"] = _now()
            self.supabase.table("leads")\
                .update(update_data)\
                .eq("id", lead_id)\
                .eq("workspace_id", workspace_id)\
                .execute()
        return self.get_lead(lead_id, workspace_id)

    def update_stage(self, lead_id: str, data: LeadStageUpdate, workspace_id: str) -> LeadResponse:
        """Move a lead to another pipeline stage"""
        self.get_lead_row(lead_id, workspace_id)
        self._check_owner(data.owner_id, workspace_id)
        update_data = data.model_dump(exclude_none=True)
        update_data["updated_at"] = _now()
        self.supabase.table("leads")\
            .update(update_data)\
            .eq("id", lead_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        logger.info(f"Lead {lead_id} moved to stage {data.stage_id}")
        return self.get_lead(lead_id, workspace_id)

    def delete_lead(self, lead_id: str, workspace_id: str) -> bool:
        """Delete a lead with its conversations, messages, labels and field values"""
        self.get_lead_row(lead_id, workspace_id)
        conversations = self.supabase.table("conversations")\
            .select("id")\
            .eq("lead_id", lead_id)\
            .eq("workspace_id", workspace_id)\
            .execute().data or []
        conversation_ids = [c["id"] for c in conversations]
        if conversation_ids:
            self.supabase.table("messages").delete().in_("conversation_id", conversation_ids).execute()
            self.supabase.table("conversations").delete().in_("id", conversation_ids).execute()
        self.supabase.table("lead_tags").delete().eq("lead_id", lead_id).execute()
        self.supabase.table("lead_custom_fields").delete().eq("lead_id", lead_id).execute()
        result = self.supabase.table("leads")\
            .delete()\
            .eq("id", lead_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        logger.info(f"Lead {lead_id} deleted with {len(conversation_ids)} conversations")
        return len(result.data) > 0

    def get_custom_fields(self, lead_id: str, workspace_id: str) -> List[CustomFieldValue]:
        self.get_lead_row(lead_id, workspace_id)
        result = self.supabase.table("lead_custom_fields")\
            .select("field_id, value")\
            .eq("lead_id", lead_id)\
            .execute()
        return [CustomFieldValue(**row) for row in result.data or []]

    def set_custom_fields(self, lead_id: str, values: List[CustomFieldValue], workspace_id: str) -> List[CustomFieldValue]:
        """Validate values against the workspace's contact fields and replace them"""
        self.get_lead_row(lead_id, workspace_id)
        field_ids = list({v.field_id for v in values})
        fields = []
        if field_ids:
            fields = self.supabase.table("contact_fields")\
                .select("*")\
                .eq("workspace_id", workspace_id)\
                .in_("id", field_ids)\
                .execute().data or []
        by_id = {f["id"]: f for f in fields}
        for item in values:
            field = by_id.get(item.field_id)
            if not field:
                raise HTTPException(status_code=400, detail=f"Unknown contact field: {item.field_id}")
            if field.get("required") and item.value in (None, ""):
                raise HTTPException(status_code=400, detail=f"Field '{field['name']}' is required")
            if field.get("type") == "select" and item.value not in (None, "") \
                    and item.value not in (field.get("options") or []):
                raise HTTPException(status_code=400, detail=f"Invalid option for field '{field['name']}'")

        self.supabase.table("lead_custom_fields").delete().eq("lead_id", lead_id).execute()
        if values:
            self.supabase.table("lead_custom_fields").insert([
                {"lead_id": lead_id, "field_id": v.field_id, "value": v.value} for v in values
            ]).execute()
        return self.get_custom_fields(lead_id, workspace_id)
