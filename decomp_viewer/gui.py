"""Tk window for browsing decompiled archives."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from tkinter import (
    BOTH,
    BOTTOM,
    END,
    HORIZONTAL,
    LEFT,
    RIGHT,
    X,
    Y,
    Menu,
    TclError,
    Text,
    Tk,
    filedialog,
    messagebox,
    ttk,
)
from typing import Any, Callable, Optional

from decomp_viewer.highlight import BLOCK_COMMENT, KEYWORD, LINE_COMMENT, STRING
from decomp_viewer.namespace import MemberNode, PackageNode
from decomp_viewer.session import ViewerSession
from decomp_viewer.tasks import (
    DECOMPILE_ARCHIVE,
    ProgressEvent,
    TaskFailure,
    TaskHandle,
    TaskPipelineError,
    TaskSuccess,
)

ARCHIVE_FILETYPES = [
    ("Java archives", "*.jar *.war *.ear"),
    ("Zip archives", "*.zip"),
    ("All files", "*"),
]

TAG_STYLES: dict[str, dict[str, Any]] = {
    KEYWORD: {"foreground": "#7f0055", "font": ("TkFixedFont", 10, "bold")},
    STRING: {"foreground": "#2a00ff"},
    LINE_COMMENT: {"foreground": "#3f7f5f", "font": ("TkFixedFont", 10, "italic")},
    BLOCK_COMMENT: {"foreground": "#3f7f5f", "font": ("TkFixedFont", 10, "italic")},
}


class DecompilerGui:
    """Archive picker, namespace tree and highlighted source view."""

    def __init__(self, master: Tk, session: Optional[ViewerSession] = None) -> None:
        self.master = master
        master.title("Decompiler Viewer")
        master.minsize(900, 600)

        self.session = session or ViewerSession()
        self._handle: TaskHandle | None = None
        self._tree_nodes: dict[str, MemberNode] = {}
        self._busy_widgets: list[Any] = []
        self._last_dir: Path | None = None

        self._build_layout()
        self._build_menu()
        self._set_status("Open an archive to begin.")
        self._stop_progress()
        self.master.after(self.session.config.poll_interval_ms, self._poll_task_queue)

    # ------------------------------------------------------------------
    # UI construction helpers
    # ------------------------------------------------------------------
    def _build_layout(self) -> None:
        container = ttk.Frame(self.master, padding=8)
        container.pack(fill=BOTH, expand=True)

        panes = ttk.PanedWindow(container, orient=HORIZONTAL)
        panes.pack(fill=BOTH, expand=True)

        tree_frame = ttk.Frame(panes)
        self.class_tree = ttk.Treeview(tree_frame, show="tree", selectmode="browse")
        tree_scroll = ttk.Scrollbar(tree_frame, orient="vertical")
        tree_scroll.pack(side=RIGHT, fill=Y)
        self.class_tree.configure(yscrollcommand=tree_scroll.set)
        tree_scroll.configure(command=self.class_tree.yview)
        self.class_tree.pack(side=LEFT, fill=BOTH, expand=True)
        self.class_tree.bind("<<TreeviewSelect>>", self._on_tree_selection_changed)
        panes.add(tree_frame, weight=1)

        notebook = ttk.Notebook(panes)
        source_tab = ttk.Frame(notebook)
        log_tab = ttk.Frame(notebook)
        notebook.add(source_tab, text="Source")
        notebook.add(log_tab, text="Activity log")
        panes.add(notebook, weight=3)
        self.notebook = notebook
        self.log_tab = log_tab

        self.editor = Text(source_tab, wrap="none", font=("TkFixedFont", 10), state="disabled")
        editor_scroll_y = ttk.Scrollbar(source_tab, orient="vertical")
        editor_scroll_y.pack(side=RIGHT, fill=Y)
        editor_scroll_x = ttk.Scrollbar(source_tab, orient="horizontal")
        editor_scroll_x.pack(side=BOTTOM, fill=X)
        self.editor.configure(
            yscrollcommand=editor_scroll_y.set, xscrollcommand=editor_scroll_x.set
        )
        editor_scroll_y.configure(command=self.editor.yview)
        editor_scroll_x.configure(command=self.editor.xview)
        self.editor.pack(side=LEFT, fill=BOTH, expand=True)
        for tag, options in TAG_STYLES.items():
            self.editor.tag_configure(tag, **options)

        log_toolbar = ttk.Frame(log_tab)
        log_toolbar.pack(fill=X, padx=4, pady=(4, 0))
        ttk.Button(log_toolbar, text="Clear", command=self._clear_log).pack(side=RIGHT)
        self.log_widget = Text(log_tab, wrap="none", height=12)
        self.log_widget.pack(fill=BOTH, expand=True, padx=4, pady=4)

        status_frame = ttk.Frame(container)
        status_frame.pack(fill=X, pady=(8, 0))
        ttk.Separator(status_frame, orient="horizontal").pack(fill=X, pady=(0, 6))
        self.progress = ttk.Progressbar(status_frame, mode="determinate")
        self.progress.pack(fill=X, pady=(0, 6))
        self.status_label = ttk.Label(status_frame, text="Ready")
        self.status_label.pack(anchor="w")

        self._busy_widgets.append(self.class_tree)

    def _build_menu(self) -> None:
        menubar = Menu(self.master)
        file_menu = Menu(menubar, tearoff=0)
        file_menu.add_command(label="Open archive...", command=self._open_archive)
        file_menu.add_separator()
        file_menu.add_command(label="Save to folder...", command=self._save_to_folder)
        file_menu.add_command(label="Save to ZIP...", command=self._save_to_zip)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.master.destroy)
        menubar.add_cascade(label="File", menu=file_menu)
        self.master.config(menu=menubar)
        self.file_menu = file_menu

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def _open_archive(self) -> None:
        selected = filedialog.askopenfilename(
            title="Open archive",
            initialdir=str(self._last_dir or Path.cwd()),
            filetypes=ARCHIVE_FILETYPES,
        )
        if not selected:
            return
        self.open_archive(Path(selected))

    def open_archive(self, archive: Path) -> None:
        self._last_dir = archive.parent
        self._clear_tree()
        self._show_text("")
        self._log(f"Decompiling {archive}\n")
        self._start_task(
            lambda: self.session.open_archive(archive),
            status_message=f"Decompiling {archive.name}...",
            indeterminate=True,
        )

    def _save_to_folder(self) -> None:
        if not self._ensure_results("Save to folder"):
            return
        output_dir = filedialog.askdirectory(title="Select output folder")
        if not output_dir:
            return
        self._log(f"Saving classes to {output_dir}\n")
        self._start_task(
            lambda: self.session.export_to_directory(Path(output_dir)),
            status_message="Saving classes to folder...",
        )

    def _save_to_zip(self) -> None:
        if not self._ensure_results("Save to ZIP"):
            return
        selected = filedialog.asksaveasfilename(
            title="Save as ZIP",
            initialfile=self.session.default_export_name(),
            defaultextension=".zip",
            filetypes=[("Zip archives", "*.zip")],
        )
        if not selected:
            return
        self._log(f"Saving classes to {selected}\n")
        self._start_task(
            lambda: self.session.export_to_archive(Path(selected)),
            status_message="Saving classes to ZIP...",
        )

    def _ensure_results(self, title: str) -> bool:
        if self.session.has_results:
            return True
        messagebox.showwarning(title, "No decompiled classes to save.")
        return False

    # ------------------------------------------------------------------
    # Background task plumbing
    # ------------------------------------------------------------------
    def _start_task(
        self,
        starter: Callable[[], TaskHandle],
        *,
        status_message: str,
        indeterminate: bool = False,
    ) -> None:
        if self._handle is not None:
            messagebox.showinfo(
                "Operation in progress",
                "Please wait for the current operation to finish.",
            )
            return
        try:
            self._handle = starter()
        except TaskPipelineError as exc:
            messagebox.showinfo("Operation in progress", str(exc))
            return
        self._set_busy_ui(True)
        self._set_status(status_message)
        self._start_progress(indeterminate=indeterminate)

    def _poll_task_queue(self) -> None:
        handle = self._handle
        try:
            if handle is not None:
                for message in handle.poll():
                    if isinstance(message, ProgressEvent):
                        self._handle_progress(message)
                    elif isinstance(message, TaskSuccess):
                        self._handle_success(handle, message)
                    elif isinstance(message, TaskFailure):
                        self._handle_failure(handle, message)
        finally:
            if handle is not None and handle.done:
                self._handle = None
                self._set_busy_ui(False)
                self._stop_progress()
            self.master.after(self.session.config.poll_interval_ms, self._poll_task_queue)

    def _handle_progress(self, event: ProgressEvent) -> None:
        if event.total:
            try:
                self.progress.stop()
                self.progress.configure(
                    mode="determinate", maximum=event.total, value=event.completed
                )
            except TclError:
                pass
        self._set_status(event.message)

    def _handle_success(self, handle: TaskHandle, outcome: TaskSuccess) -> None:
        self.session.apply_outcome(outcome)
        if handle.kind == DECOMPILE_ARCHIVE:
            self._populate_tree(self.session.tree)
            count = len(self.session.store)
            self._set_status(f"Decompiled {count} classes. Ready")
            self._log(f"Decompiled {count} classes.\n")
            return

        summary = outcome.result
        self._set_status(f"Saved all classes to {summary.target}")
        self._log(f"Saved {len(summary.written)} classes to {summary.target}.\n")
        if summary.skipped:
            self._log(f"Skipped {len(summary.skipped)} classes without content.\n")
        messagebox.showinfo("Success", "All classes saved successfully!")

    def _handle_failure(self, handle: TaskHandle, outcome: TaskFailure) -> None:
        self.session.apply_outcome(outcome)
        if handle.kind == DECOMPILE_ARCHIVE:
            self._populate_tree(self.session.tree)
            title = "Error decompiling archive"
        else:
            title = "Error saving classes"
        self._set_status(f"Error: {outcome.reason}", error=True)
        self._log(f"{title}: {outcome.detail or outcome.reason}\n")
        messagebox.showerror("Error", f"{title}: {outcome.reason}")

    # ------------------------------------------------------------------
    # Tree and source view
    # ------------------------------------------------------------------
    def _clear_tree(self) -> None:
        for child in self.class_tree.get_children():
            self.class_tree.delete(child)
        self._tree_nodes.clear()

    def _populate_tree(self, root: PackageNode) -> None:
        self._clear_tree()

        def insert(parent_id: str, node: PackageNode) -> None:
            for child in node.children:
                if isinstance(child, PackageNode):
                    item_id = self.class_tree.insert(
                        parent_id, "end", text=child.segment, open=False
                    )
                    insert(item_id, child)
                else:
                    item_id = self.class_tree.insert(
                        parent_id, "end", text=child.display_name
                    )
                    self._tree_nodes[item_id] = child

        insert("", root)

    def _on_tree_selection_changed(self, _event: Any) -> None:
        selection = self.class_tree.selection()
        member = self._tree_nodes.get(selection[0]) if selection else None
        if member is None:
            self._show_text("")
            return
        text, spans = self.session.highlighted(member.qualified_name)
        self._show_text(text, spans)

    def _show_text(self, text: str, spans: Optional[list] = None) -> None:
        self.editor.configure(state="normal")
        self.editor.delete("1.0", END)
        for span in spans or []:
            tag = span.kind if span.kind in TAG_STYLES else ()
            self.editor.insert(END, span.text, tag)
        if spans is None:
            self.editor.insert(END, text)
        self.editor.configure(state="disabled")

    # ------------------------------------------------------------------
    # Status helpers
    # ------------------------------------------------------------------
    def _log(self, text: str) -> None:
        self.log_widget.insert(END, text)
        self.log_widget.see(END)

    def _clear_log(self) -> None:
        self.log_widget.delete("1.0", END)

    def _set_status(self, message: str, *, error: bool = False) -> None:
        color = "#a00" if error else "#0a5c0a"
        self.status_label.configure(text=message, foreground=color)

    def _start_progress(self, *, indeterminate: bool) -> None:
        try:
            if indeterminate:
                self.progress.configure(mode="indeterminate")
                self.progress.start(12)
            else:
                self.progress.configure(mode="determinate", value=0, maximum=100)
        except TclError:
            pass

    def _stop_progress(self) -> None:
        try:
            self.progress.stop()
            self.progress.configure(mode="determinate", value=0, maximum=100)
        except TclError:
            pass

    def _set_busy_ui(self, busy: bool) -> None:
        cursor_name = "watch" if sys.platform != "win32" else "wait"
        try:
            self.master.configure(cursor=cursor_name if busy else "")
        except TclError:
            pass

        state = "disabled" if busy else "normal"
        for index in (0, 2, 3):
            try:
                self.file_menu.entryconfigure(index, state=state)
            except TclError:
                continue
        for widget in self._busy_widgets:
            try:
                if isinstance(widget, ttk.Treeview):
                    widget.state(["disabled"] if busy else ["!disabled"])
                else:
                    widget.configure(state=state)
            except TclError:
                continue


def main(
    *, session: Optional[ViewerSession] = None, archive: Optional[Path] = None
) -> None:
    try:
        root = Tk()
    except TclError as exc:
        print("Unable to start the decompiler viewer:", exc, file=sys.stderr)
        if sys.platform != "win32" and not os.environ.get("DISPLAY"):
            print(
                "No graphical display detected. Set the DISPLAY environment variable "
                "or run on a system with a GUI.",
                file=sys.stderr,
            )
        sys.exit(1)

    gui = DecompilerGui(root, session)
    if archive is not None:
        root.after(0, lambda: gui.open_archive(archive))
    root.mainloop()
