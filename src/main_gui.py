import tkinter as tk
from tkinter import ttk, filedialog, messagebox
import matplotlib.pyplot as plt
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
from typing import List, Optional
import logging

# Local imports (Flat imports for PyInstaller compatibility)
from scheduler import (
    DEFAULT_QUANTUM, RR_POLICIES, InvalidInputError, Process, SimulationResult, simulate
)
from utils import (
    calculate_average_metrics, calculate_cpu_utilization, draw_gantt_chart, export_results, format_summary,
    parse_processes, parse_quantum, total_completion_time, with_idle_gaps
)

logger = logging.getLogger(__name__)

# --- Theme Configuration ---
DARK_THEME = {
    'bg': '#1e1e1e', 'fg': '#ffffff', 'accent': '#00bcd4', 'border': '#444444',
    'input_bg': "#2c3e50", 'tree_bg': '#282828', 'tree_heading_bg': '#3f51b5',
    'plot_bg': '#1e1e1e', 'plot_grid': '#555555', 'plot_text': 'white',
    'button_run': '#0078d7', 'button_export': '#4caf50', 'button_reset': '#f44336'
}
LIGHT_THEME = {
    'bg': '#fafafa', 'fg': "#0b0101", 'accent': '#007acc', 'border': '#d0d0d0',
    'input_bg': '#ffffff', 'tree_bg': '#ffffff', 'tree_heading_bg': '#1976d2',
    'plot_bg': '#ffffff', 'plot_grid': "#48778f", 'plot_text': "#000000",
    'button_run': '#0078d7', 'button_export': '#2e7d32', 'button_reset': '#d32f2f'
}

# Display name -> algorithm key understood by scheduler.simulate
ALGORITHM_OPTIONS = {
    "First-Come, First-Served (FCFS)": "FCFS",
    "Shortest Job First (SJF)": "SJF",
    "Round Robin (RR)": "RR",
}


class CPUSchedulerApp:
    def __init__(self, master):
        self.master = master
        master.title("CPU Scheduling Simulator")
        master.geometry("1300x850")

        # --- Simulation State ---
        self.processes: List[Process] = []
        self.current_pid = 1
        self.result: Optional[SimulationResult] = None
        self.algorithm_name = ""
        self.animation_running = False
        self.current_step = 0
        self.playback_speed = 500  # milliseconds delay per step
        self._after_id = None
        self.current_theme = DARK_THEME

        self.algorithm_var = tk.StringVar(master, value=next(iter(ALGORITHM_OPTIONS)))
        self.quantum_var = tk.StringVar(master, value=str(DEFAULT_QUANTUM))
        self.policy_var = tk.StringVar(master, value=RR_POLICIES[0])

        self.input_vars = {
            'pid': tk.StringVar(value=f"P{self.current_pid}"),
            'arrival': tk.StringVar(value="0"),
            'burst': tk.StringVar(value=""),
        }

        self._setup_style()
        self.master.configure(bg=self.current_theme['bg'])

        self._create_widgets()
        self._create_menu()

        self.update_process_table()
        self.display_results_final(clear_only=True)

    def _create_menu(self):
        menubar = tk.Menu(self.master)
        self.master.config(menu=menubar)

        theme_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="Theme", menu=theme_menu)

        theme_menu.add_command(label="Dark Theme", command=lambda: self.switch_theme(DARK_THEME))
        theme_menu.add_command(label="Light Theme", command=lambda: self.switch_theme(LIGHT_THEME))

    def switch_theme(self, theme):
        self.current_theme = theme
        self.master.configure(bg=theme['bg'])
        self._setup_style()
        if not self.animation_running:
            self.display_results_final(clear_only=self.result is None)

    def _setup_style(self):
        self.style = ttk.Style()
        try:
            self.style.theme_use('clam')
        except tk.TclError:
            pass
        theme = self.current_theme

        self.style.configure('TFrame', background=theme['bg'])
        self.style.configure('TLabel', background=theme['bg'], foreground=theme['fg'], font=('Helvetica', 10))
        self.style.configure('TLabelframe', background=theme['bg'], foreground=theme['accent'], bordercolor=theme['border'])
        self.style.configure('TLabelframe.Label', background=theme['bg'], foreground=theme['accent'], font=('Helvetica', 12, 'bold'))

        self.style.configure('TButton', padding=6, relief="flat", foreground=theme['fg'], font=('Helvetica', 10, 'bold'))
        self.style.configure('Run.TButton', background=theme['button_run'], foreground=theme['fg'])
        self.style.configure('Export.TButton', background=theme['button_export'], foreground=theme['fg'])
        self.style.configure('Reset.TButton', background=theme['button_reset'], foreground=theme['fg'])

        self.style.configure('TEntry', fieldbackground=theme['input_bg'], foreground=theme['fg'], bordercolor=theme['border'])
        self.style.configure('TCombobox', fieldbackground=theme['input_bg'], foreground=theme['fg'], selectbackground=theme['input_bg'])
        self.style.map('TCombobox', fieldbackground=[('readonly', theme['tree_bg'])], foreground=[('readonly', theme['fg'])])

        self.style.configure("Treeview", background=theme['tree_bg'], foreground=theme['fg'], fieldbackground=theme['tree_bg'])
        self.style.configure("Treeview.Heading", background=theme['tree_heading_bg'], foreground=theme['fg'])

    def _create_widgets(self):
        main_frame = ttk.Frame(self.master, padding="15"); main_frame.pack(fill=tk.BOTH, expand=True)
        left_panel = ttk.Frame(main_frame, width=350); left_panel.pack(side=tk.LEFT, fill=tk.Y, padx=(0, 15)); left_panel.pack_propagate(False)

        # 1. New Process Input
        input_frame = ttk.LabelFrame(left_panel, text=" New Process Input", padding="10"); input_frame.pack(fill=tk.X, pady=(0, 15))

        for i, (label_text, key) in enumerate([("Process (Read Only):", 'pid'), ("Arrival Time (AT):", 'arrival'), ("Burst Time (BT):", 'burst')]):
            ttk.Label(input_frame, text=label_text).grid(row=i, column=0, sticky="w", padx=5, pady=4)
            entry = ttk.Entry(input_frame, textvariable=self.input_vars[key], width=15)
            entry.grid(row=i, column=1, padx=5, pady=4, sticky="ew")
            if key == 'pid':
                entry.config(state='readonly')

        ttk.Button(input_frame, text="Add Process", command=self.add_process).grid(row=3, column=0, columnspan=2, pady=10, sticky="ew")

        # 2. Process List Table
        self._create_process_table(left_panel)

        # 3. Algorithm Selector & Controls
        control_frame = ttk.LabelFrame(left_panel, text=" Algorithm Controls", padding="10"); control_frame.pack(fill=tk.X, pady=10)
        control_frame.columnconfigure(1, weight=1)

        ttk.Label(control_frame, text="Algorithm:").grid(row=0, column=0, sticky="w", padx=5, pady=5)
        algo_menu = ttk.Combobox(control_frame, textvariable=self.algorithm_var, values=list(ALGORITHM_OPTIONS.keys()), state="readonly")
        algo_menu.grid(row=0, column=1, padx=5, pady=5, sticky="ew")
        algo_menu.bind('<<ComboboxSelected>>', self.update_control_visibility)

        # Quantum and queue policy (RR only)
        self.rr_widgets = [
            (ttk.Label(control_frame, text="Quantum (q):"), ttk.Entry(control_frame, textvariable=self.quantum_var, width=15)),
            (ttk.Label(control_frame, text="Queue Policy:"), ttk.Combobox(control_frame, textvariable=self.policy_var, values=list(RR_POLICIES), state="readonly", width=12)),
        ]
        self.update_control_visibility()

        action_button_frame = ttk.Frame(control_frame); action_button_frame.grid(row=3, column=0, columnspan=2, pady=15, sticky="ew")
        for col in range(3):
            action_button_frame.columnconfigure(col, weight=1)

        ttk.Button(action_button_frame, text="Run", command=self.run_simulation, style='Run.TButton').grid(row=0, column=0, sticky="ew", padx=2)
        ttk.Button(action_button_frame, text="Export", command=self.export_results_ui, style='Export.TButton').grid(row=0, column=1, sticky="ew", padx=2)
        ttk.Button(action_button_frame, text="Reset", command=self.reset_with_confirmation, style='Reset.TButton').grid(row=0, column=2, sticky="ew", padx=2)

        # 4. Results and Plot Panel
        right_panel = ttk.Frame(main_frame); right_panel.pack(side=tk.RIGHT, fill=tk.BOTH, expand=True)
        self._create_results_section(right_panel)
        self._create_plot_section(right_panel)

    def _create_process_table(self, parent):
        table_frame = ttk.LabelFrame(parent, text=" Current Process List", padding="10"); table_frame.pack(fill=tk.BOTH, expand=True, pady=10)
        columns = ("Name", "AT", "BT", "Actions")
        self.process_tree = ttk.Treeview(table_frame, columns=columns, show="headings", height=12)
        for col, width in zip(columns, (90, 60, 60, 70)):
            self.process_tree.heading(col, text=col); self.process_tree.column(col, width=width, anchor=tk.CENTER)

        self.process_tree.pack(fill=tk.BOTH, expand=True)
        self.process_tree.bind('<ButtonRelease-1>', self.handle_table_click)

    def _create_results_section(self, parent):
        results_frame = ttk.LabelFrame(parent, text=" Performance Metrics", padding="10"); results_frame.pack(fill=tk.X, pady=(0, 15))
        columns = ("Process", "AT", "BT", "CT", "TAT", "WT")
        self.metrics_tree = ttk.Treeview(results_frame, columns=columns, show="headings", height=6)
        for col in columns:
            self.metrics_tree.heading(col, text=col); self.metrics_tree.column(col, width=80, anchor=tk.CENTER)
        self.metrics_tree.pack(fill=tk.BOTH, expand=False, pady=(0, 10))

        summary_frame = ttk.Frame(results_frame); summary_frame.pack(fill=tk.X, pady=(5, 0))
        self.summary_labels = {}
        for i, metric in enumerate(["Avg TAT:", "Avg WT:", "CPU Util:", "Throughput:"]):
            ttk.Label(summary_frame, text=metric, font=('Helvetica', 10, 'bold')).grid(row=0, column=i * 2, sticky="w", padx=(15, 5))
            value_label = ttk.Label(summary_frame, text="N/A", font=('Helvetica', 10, 'bold'))
            value_label.grid(row=0, column=i * 2 + 1, sticky="w", padx=(0, 20)); self.summary_labels[metric] = value_label

        self.summary_text = tk.Text(results_frame, height=8, wrap=tk.NONE, relief="flat", font=("Courier", 9))
        self.summary_text.pack(fill=tk.X, pady=(10, 0))

    def _create_plot_section(self, parent):
        plot_frame = ttk.LabelFrame(parent, text=" Gantt Chart Visualization", padding="10"); plot_frame.pack(fill=tk.BOTH, expand=True, pady=(0, 10))
        self.fig, self.ax = plt.subplots(figsize=(8, 4))
        self.fig.tight_layout(pad=3.0)
        self.canvas = FigureCanvasTkAgg(self.fig, master=plot_frame)
        self.canvas.get_tk_widget().pack(fill=tk.BOTH, expand=True)

    def _apply_plot_theme(self):
        theme = self.current_theme
        self.fig.set_facecolor(theme['plot_bg'])
        self.ax.set_facecolor(theme['plot_bg'])
        self.ax.tick_params(axis='x', colors=theme['plot_text']); self.ax.tick_params(axis='y', colors=theme['plot_text'])
        self.ax.spines['bottom'].set_color(theme['plot_text']); self.ax.spines['left'].set_color(theme['plot_text'])
        self.ax.xaxis.label.set_color(theme['plot_text']); self.ax.title.set_color(theme['plot_text'])
        self.ax.grid(axis='x', linestyle='--', color=theme['plot_grid'])
        self.canvas.draw()

    def _set_summary_text(self, text):
        theme = self.current_theme
        self.summary_text.config(state=tk.NORMAL, bg=theme['tree_bg'], fg=theme['fg'])
        self.summary_text.delete("1.0", tk.END)
        self.summary_text.insert(tk.END, text)
        self.summary_text.config(state=tk.DISABLED)

    def _bar_text_color(self):
        return 'white' if self.current_theme is DARK_THEME else 'black'

    def _read_quantum(self) -> Optional[int]:
        if ALGORITHM_OPTIONS[self.algorithm_var.get()] != "RR":
            return None
        return parse_quantum(self.quantum_var.get())

    def _simulate_current(self) -> SimulationResult:
        algorithm = ALGORITHM_OPTIONS[self.algorithm_var.get()]
        return simulate(algorithm, self.processes, quantum=self._read_quantum(), policy=self.policy_var.get())

    def _stop_animation(self):
        self.animation_running = False
        if self._after_id is not None:
            self.master.after_cancel(self._after_id)
            self._after_id = None

    def run_simulation(self):
        self._stop_animation()
        if not self.processes:
            self.result = None
            self.display_results_final(clear_only=True)
            return

        try:
            self.result = self._simulate_current()
        except InvalidInputError as e:
            messagebox.showerror("Input Error", str(e))
            return
        except Exception as e:
            logger.exception("Simulation failed")
            messagebox.showerror("Simulation Error", f"An error occurred during simulation: {e}")
            return

        self.algorithm_name = self.algorithm_var.get()
        self.current_step = 0
        self.animation_running = True
        self._after_id = self.master.after(self.playback_speed, self.animate_gantt_chart)

    def animate_gantt_chart(self):
        rows = with_idle_gaps(self.result.timeline) if self.result else []
        if not self.animation_running or self.current_step >= len(rows):
            self.animation_running = False
            self._after_id = None
            self.display_results_final()
            return

        self.current_step += 1
        label = rows[self.current_step - 1][1]
        draw_gantt_chart(self.ax, self.result.timeline, f"Gantt Chart: {self.algorithm_name} (Executing {label})",
                         upto=self.current_step, text_color=self._bar_text_color(), highlight_last=True)
        self._apply_plot_theme()
        self._after_id = self.master.after(self.playback_speed, self.animate_gantt_chart)

    def display_results_final(self, clear_only=False):
        for item in self.metrics_tree.get_children(): self.metrics_tree.delete(item)
        for label in self.summary_labels.values(): label.config(text="N/A")
        self._set_summary_text("Ready to compute! Add processes with their Arrival Time (AT) and Burst Time (BT).")

        if clear_only or self.result is None:
            draw_gantt_chart(self.ax, [], "Gantt Chart")
            self._apply_plot_theme()
            return

        processes, timeline = self.result
        final_time = total_completion_time(timeline)

        for p in processes:
            self.metrics_tree.insert("", tk.END, values=(p.name, p.arrival, p.burst, p.completion, p.turnaround, p.waiting))

        avg_metrics = calculate_average_metrics(processes, final_time)
        cpu_util = calculate_cpu_utilization(timeline, final_time)
        self.summary_labels["Avg TAT:"].config(text=f"{avg_metrics.get('Average Turnaround Time', 0.0):.2f}")
        self.summary_labels["Avg WT:"].config(text=f"{avg_metrics.get('Average Waiting Time', 0.0):.2f}")
        self.summary_labels["CPU Util:"].config(text=f"{cpu_util:.2f}%")
        self.summary_labels["Throughput:"].config(text=f"{avg_metrics.get('Throughput (proc/unit)', 0.0):.3f}")
        self._set_summary_text(format_summary(processes, timeline, self.algorithm_name))

        draw_gantt_chart(self.ax, timeline, f"Gantt Chart: {self.algorithm_name} (Finished)", text_color=self._bar_text_color())
        self._apply_plot_theme()

    def export_results_ui(self):
        if not self.processes:
            messagebox.showinfo("Export Error", "Please add processes and run a simulation before exporting results.")
            return

        try:
            processes, timeline = self._simulate_current()
        except InvalidInputError as e:
            messagebox.showerror("Input Error", str(e))
            return

        algorithm_name = self.algorithm_var.get()
        filepath = filedialog.asksaveasfilename(
            defaultextension=".csv",
            initialfile=f"{ALGORITHM_OPTIONS[algorithm_name]}_results.csv",
            filetypes=[("CSV files", "*.csv"), ("All files", "*.*")]
        )
        if not filepath:
            return  # User cancelled the dialog

        try:
            export_results(filepath, processes, timeline, algorithm_name)
        except OSError as e:
            logger.error("Export to %s failed: %s", filepath, e)
            messagebox.showerror("Export Error", f"An error occurred during export: {e}")
            return
        messagebox.showinfo("Export Success", "Simulation results exported successfully!")

    def update_control_visibility(self, event=None):
        is_rr = ALGORITHM_OPTIONS[self.algorithm_var.get()] == "RR"
        for row, (label, widget) in enumerate(self.rr_widgets, start=1):
            if is_rr:
                label.grid(row=row, column=0, sticky="w", padx=5, pady=5); widget.grid(row=row, column=1, padx=5, pady=5, sticky="ew")
            else:
                label.grid_forget(); widget.grid_forget()

    def add_process(self):
        try:
            new_process, = parse_processes([(self.input_vars['arrival'].get(), self.input_vars['burst'].get())],
                                           start_pid=self.current_pid)
        except InvalidInputError as e:
            messagebox.showerror("Input Error", str(e))
            return

        self.processes.append(new_process)
        self.update_process_table()
        self.current_pid += 1
        self.input_vars['pid'].set(f"P{self.current_pid}")
        self.input_vars['burst'].set("")
        self.run_simulation()

    def delete_process(self, pid_to_delete: int):
        self.processes = [p for p in self.processes if p.pid != pid_to_delete]
        self.update_process_table()
        self.run_simulation()

    def handle_table_click(self, event):
        item = self.process_tree.identify_row(event.y)
        if item and self.process_tree.identify_column(event.x) == '#4':
            self.delete_process(int(item))

    def update_process_table(self):
        for item in self.process_tree.get_children(): self.process_tree.delete(item)
        for p in self.processes:
            self.process_tree.insert("", tk.END, iid=str(p.pid), values=(p.name, p.arrival, p.burst, "Delete"))

    def reset_with_confirmation(self):
        if messagebox.askyesno("Confirm Reset", "Are you sure you want to reset all data and start again?"):
            self.reset_data()

    def reset_data(self):
        self._stop_animation()
        self.processes = []
        self.current_pid = 1
        self.result = None
        self.input_vars['pid'].set(f"P{self.current_pid}")
        self.input_vars['arrival'].set("0")
        self.input_vars['burst'].set("")
        self.update_process_table()
        self.display_results_final(clear_only=True)


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    root = tk.Tk()
    CPUSchedulerApp(root)
    root.mainloop()


if __name__ == "__main__":
    main()
